from flask import Flask, Response, request, jsonify, abort
import os
import sys
import argparse
import logging
import threading
from importlib import resources
from werkzeug.serving import make_server
from . import __version__
from .comics import (ComicState, ComicError, BadRequest, NotFound, load_comic,
                     content_type_for, PAGE_SIZE)
from .launcher import BrowserChoice, launch_in_background

HOST = '127.0.0.1'
DEFAULT_PORT = 4000

logger = logging.getLogger(__name__)

INDEX_HTML = '''
<!DOCTYPE html>
<html lang="zh-Hant">
<head>
    <meta charset="utf-8">
    <title>Comic Reader</title>
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <link rel="stylesheet" href="/assets/styles.css">
</head>
<body>
    <div id="app-root"></div>
    <script type="module" src="/assets/layout.js"></script>
</body>
</html>
'''

ASSET_TYPES = {
    'styles.css': 'text/css; charset=utf-8',
    'app.js': 'application/javascript; charset=utf-8',
    'layout.js': 'application/javascript; charset=utf-8',
    'layout.html': 'text/html; charset=utf-8',
    'i18n.js': 'application/javascript; charset=utf-8',
    'dom.js': 'application/javascript; charset=utf-8',
}


# The front end ships inside the package and is read once, at import time;
# requests never touch the disk for it
def load_assets(package=__package__):
    asset_dir = resources.files(package).joinpath('assets')
    assets = {}
    for name, content_type in ASSET_TYPES.items():
        assets[name] = (asset_dir.joinpath(name).read_text(encoding='utf-8'), content_type)
    return assets


ASSETS = load_assets()


def select_dir_response(ok, count, message, status):
    return jsonify({'ok': ok, 'count': count, 'message': message}), status


def build_app(state=None):
    app = Flask(__name__)
    if state is None:
        state = ComicState()
    app.config['COMIC_STATE'] = state

    @app.route('/', methods=['GET'])
    def index():
        return Response(INDEX_HTML, content_type='text/html; charset=utf-8')

    @app.route('/assets/<name>')
    def asset(name):
        if name not in ASSETS:
            abort(404)
        body, content_type = ASSETS[name]
        return Response(body, content_type=content_type)

    @app.route('/api/images')
    def api_images():
        _, images = state.snapshot()
        # Names + page size so the front end can paginate
        return jsonify({'images': images, 'page_size': PAGE_SIZE})

    @app.route('/api/select-dir', methods=['POST'])
    def select_dir():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict) or 'path' not in payload:
            return select_dir_response(False, 0, 'Request body must be JSON like {"path": "..."}', 400)
        try:
            count = state.select(payload['path'])
        except ComicError as e:
            return select_dir_response(False, 0, str(e), 400)
        return select_dir_response(True, count, f"Loaded {count} images", 200)

    # `path` so that names with slashes reach us and get refused with a 400
    @app.route('/images/<path:name>')
    def image(name):
        try:
            path = state.resolve_image(name)
        except BadRequest:
            abort(400)
        except NotFound:
            abort(404)

        try:
            with open(path, 'rb') as f:
                data = f.read()
        except OSError as e:
            logger.warning("Could not read %s: %s", path, e)
            abort(404)
        return Response(data, content_type=content_type_for(name))

    return app


def port_number(value):
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}")
    if not 0 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port must be between 0 and 65535, got {port}")
    return port


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog='comic-reader',
        description='Read a folder of comic pages in the browser.',
    )
    parser.add_argument('-d', '--dir', help='Folder holding the comic images (001.png, 002.png, ...). '
                                            'If omitted, pick one inside the web page.')
    parser.add_argument('--port', type=port_number, default=DEFAULT_PORT,
                        help=f'HTTP port to listen on, 0 for any free port (default: {DEFAULT_PORT})')
    parser.add_argument('--browser', type=BrowserChoice, choices=list(BrowserChoice),
                        default=BrowserChoice.DEFAULT, help='Browser to open (default: default)')
    parser.add_argument('--no-browser', action='store_true', help='Do not open a browser')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser.parse_args(argv)


def wait_for_interrupt(worker):
    while worker.is_alive():
        worker.join(0.5)


# Serve until Ctrl+C, then stop accepting and let running requests finish
def run_server(server):
    worker = threading.Thread(target=server.serve_forever, daemon=True)
    worker.start()
    try:
        wait_for_interrupt(worker)
    except KeyboardInterrupt:
        pass
    print("\nShutting down...")
    server.shutdown()
    worker.join()
    server.server_close()


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(name)s: %(message)s')

    state = ComicState()
    if args.dir:
        try:
            directory, images = load_comic(os.path.expanduser(args.dir))
        except ComicError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        state.replace(directory, images)
        print(f"Loaded {len(images)} images from {directory}")

    app = build_app(state)
    try:
        server = make_server(HOST, args.port, app, threaded=True)
    except OSError as e:
        print(f"Error: failed to bind to port {args.port}: {e}", file=sys.stderr)
        return 1
    except SystemExit:
        # Werkzeug reports a failed bind on stderr itself and calls sys.exit
        print(f"Error: failed to bind to port {args.port}", file=sys.stderr)
        return 1
    # Handler threads are joined on close
    server.daemon_threads = False

    url = f"http://{HOST}:{server.server_port}"
    if not args.no_browser:
        launch_in_background(args.browser, url)

    print(f"Serving comics at {url}")
    print("Press Ctrl+C to stop the server.")
    run_server(server)
    return 0


if __name__ == '__main__':
    sys.exit(main())
