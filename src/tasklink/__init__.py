"""tasklink: markdown tasks mirrored to GitHub Issues and Shortcut Stories."""

__version__ = "0.1.0"
