"""Volume icon, naming and signing helpers for macOS disk images."""

__version__ = "0.1.0"
