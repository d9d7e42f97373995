"""EzLead: job posting ingestion and company hierarchy enrichment."""

__version__ = "0.3.0"
