"""Data stores for persistence and caching.

Stores handle:
- PostgreSQL: DB session, connection pool, table lifecycle
- Redis: cache payloads, TTLs, tag indexes

No catalog logic in stores - that belongs in services.
"""
