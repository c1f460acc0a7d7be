"""labsite - content management for a university lab website."""

__version__ = "0.4.0"
