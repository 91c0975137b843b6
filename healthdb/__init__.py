"""Healthcare operational data store and analytics."""

__version__ = "0.1.0"
