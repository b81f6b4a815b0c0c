"""Multi-tenant analytics ingestion and reporting for the agency portal."""

__version__ = "0.3.0"
