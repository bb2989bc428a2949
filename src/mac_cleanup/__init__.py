"""Safe, whitelist-only disk cleanup for macOS."""

__version__ = "1.0.0"
