"""Trade journal core: broker file import and trade analytics."""

__version__ = "0.1.0"
