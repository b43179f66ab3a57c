"""Language server showing the latest published version of npm dependencies."""

__version__ = "0.1.0"
