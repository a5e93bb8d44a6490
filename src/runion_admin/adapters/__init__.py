"""Database adapters package.

Provides the ``DatabaseClient`` / ``UnitOfWork`` Protocols, the async
PostgreSQL adapter, and a transactional in-memory adapter.

Usage:
    from runion_admin.adapters import DatabaseClient, AsyncPostgresAdapter
    from runion_admin.adapters import InMemoryAdapter
"""

from runion_admin.adapters.base import DatabaseClient, UnitOfWork
from runion_admin.adapters.memory import InMemoryAdapter
from runion_admin.adapters.postgres import AsyncPostgresAdapter

__all__ = [
    "DatabaseClient",
    "UnitOfWork",
    "AsyncPostgresAdapter",
    "InMemoryAdapter",
]
