"""API routers package.

- admin: ingestion operator routes (job triggers, audit log, settings, streams)
"""

# Note: Routers are imported directly in api/app.py to avoid circular imports

__all__ = ["admin"]
