"""storehook: webhook ingestion and customer reconciliation."""

__version__ = "0.1.0"
