"""Serve a folder of comic pages as a paginated reader in the browser."""

__version__ = '0.1.0'
