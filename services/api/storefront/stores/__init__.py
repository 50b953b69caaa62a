"""Data stores for persistence and coordination.

Stores handle:
- PostgreSQL: DB session, ORM operations
- Redis: short-lived locks for shipping refresh

No pricing or enrichment logic in stores - that belongs in services.
"""
