"""News scanner: scheduled extraction, annotation and ingestion of news sources."""

__version__ = "0.1.0"
