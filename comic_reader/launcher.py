import sys
import enum
import logging
import threading
import subprocess
import webbrowser

logger = logging.getLogger(__name__)


class BrowserChoice(enum.Enum):
    DEFAULT = 'default'
    EDGE = 'edge'
    BRAVE = 'brave'

    def __str__(self):
        return self.value


# Launch commands per browser: (macOS, Windows, anything else).
# `{url}` is substituted when the command is built.
APP_COMMANDS = {
    BrowserChoice.EDGE: (
        ['open', '-a', 'Microsoft Edge', '{url}'],
        ['cmd', '/C', 'start', 'microsoft-edge:{url}'],
        ['microsoft-edge', '{url}'],
    ),
    BrowserChoice.BRAVE: (
        ['open', '-a', 'Brave Browser', '{url}'],
        ['cmd', '/C', 'start', '{url}'],
        ['brave-browser', '{url}'],
    ),
}


class LaunchError(Exception):
    pass


class DefaultOpener:
    """Hand the URL to whatever the OS considers the default browser."""

    def __init__(self, opener=webbrowser.open):
        self.opener = opener

    def __call__(self, url):
        try:
            opened = self.opener(url)
        except webbrowser.Error as e:
            raise LaunchError(f"open default browser failed: {e}") from e
        if opened is False:
            raise LaunchError("no default browser available")


class NamedAppLauncher:
    """Run a platform command that starts one specific browser."""

    def __init__(self, name, command, runner=subprocess.run):
        self.name = name
        self.command = command
        self.runner = runner

    def __call__(self, url):
        args = [part.replace('{url}', url) for part in self.command]
        try:
            result = self.runner(args, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except OSError as e:
            raise LaunchError(f"failed to launch {self.name} ({args[0]}): {e}") from e
        if result.returncode != 0:
            raise LaunchError(f"{self.name} exited with status {result.returncode}")


class FallbackToDefault:
    def __init__(self, primary, fallback=None):
        self.primary = primary
        self.fallback = fallback or DefaultOpener()

    def __call__(self, url):
        try:
            self.primary(url)
        except LaunchError as e:
            logger.warning("%s; falling back to default browser", e)
            self.fallback(url)


def command_for(choice, platform=None):
    platform = platform or sys.platform
    mac, windows, other = APP_COMMANDS[choice]
    if platform == 'darwin':
        return mac
    if platform.startswith('win'):
        return windows
    return other


# Build the launch chain for the chosen browser
def strategy_for(choice, platform=None, runner=subprocess.run, opener=webbrowser.open):
    choice = BrowserChoice(choice)
    default = DefaultOpener(opener)
    if choice is BrowserChoice.DEFAULT:
        return default
    named = NamedAppLauncher(choice.name.title(), command_for(choice, platform), runner)
    return FallbackToDefault(named, default)


# Never raises: a browser that won't open is not a reason to stop serving
def launch_browser(choice, url, **kwargs):
    try:
        strategy_for(choice, **kwargs)(url)
    except LaunchError as e:
        logger.warning("Browser launch failed: %s", e)
        return False
    return True


def launch_in_background(choice, url, **kwargs):
    thread = threading.Thread(target=launch_browser, args=(choice, url), kwargs=kwargs, daemon=True)
    thread.start()
    return thread
