"""reclaim - find and safely remove regenerable developer storage."""

__version__ = "0.1.0"
