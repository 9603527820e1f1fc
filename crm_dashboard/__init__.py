"""CRM activity dashboard: per-credential KPI and trend aggregation over synced CRM tables."""

__version__ = "0.1.0"

__all__ = ["__version__"]
