"""d8-data: command-line client for cluster data export sessions."""

__version__ = "0.1.0"
