"""
Database Module
===============

Async SQL access for the warranty record store.

Clients:
- PostgreSQL (asyncpg + SQLAlchemy)
- SQLite (aiosqlite) for development and tests

Usage:
    from shared.database import PostgresClient, create_tables

    engine = PostgresClient.get_engine()
    await create_tables(engine)
"""

from shared.database.postgres import (
    Base,
    PostgresClient,
    create_engine,
    create_session_factory,
    create_tables,
)


__all__ = [
    "Base",
    "PostgresClient",
    "create_engine",
    "create_session_factory",
    "create_tables",
]
