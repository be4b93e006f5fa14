"""
Database connectivity and connection management for Supabase.
Provides connection pooling and RPC access to the relationship aggregate functions.
"""

import asyncio
import logging
from typing import Optional, Dict, Any, List
from datetime import datetime
from contextlib import asynccontextmanager
from supabase import create_client, Client
from postgrest.exceptions import APIError

from app.core.config import settings
from app.core.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages Supabase database connections and operations."""

    def __init__(self):
        self._client: Optional[Client] = None
        self._connection_pool: Dict[str, Client] = {}
        self._pool_size = settings.database_pool_size
        self._max_overflow = settings.database_max_overflow
        self._timeout = settings.database_timeout
        self._active_connections = 0
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Initialize the database connection pool."""
        try:

            self._client = create_client(settings.supabase_url, settings.supabase_key)

            for i in range(self._pool_size):
                client = create_client(settings.supabase_url, settings.supabase_key)
                self._connection_pool[f"conn_{i}"] = client

            logger.info(
                f"Database connection pool initialized with {self._pool_size} connections"
            )

        except Exception as e:
            logger.error(f"Failed to initialize database connection: {str(e)}")
            raise DatabaseError(f"Database initialization failed: {str(e)}")

    async def close(self) -> None:
        """Close all database connections."""
        async with self._lock:
            self._connection_pool.clear()
            self._client = None
            self._active_connections = 0
            logger.info("Database connections closed")

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    @asynccontextmanager
    async def get_connection(self):
        """Get a database connection from the pool."""
        async with self._lock:
            if not self._client:
                raise DatabaseError("Database not initialized")

            if self._connection_pool:
                conn_id, client = self._connection_pool.popitem()
                self._active_connections += 1
            elif self._active_connections < self._pool_size + self._max_overflow:

                client = create_client(settings.supabase_url, settings.supabase_key)
                conn_id = f"overflow_{self._active_connections}"
                self._active_connections += 1
            else:
                raise DatabaseError("Connection pool exhausted")

        try:
            yield client
        finally:
            async with self._lock:
                self._active_connections -= 1

                if conn_id.startswith("conn_"):
                    self._connection_pool[conn_id] = client

    async def call_function(
        self, function_name: str, params: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        """
        Call a PostgreSQL function through Supabase RPC.

        The Supabase client is synchronous, so the request runs in a worker
        thread and is bounded by the configured database timeout.

        Args:
            function_name: Name of the database function
            params: Named function arguments

        Returns:
            List of result rows

        Raises:
            DatabaseError: If the call fails or times out
        """
        try:
            async with self.get_connection() as client:
                query = client.rpc(function_name, params)
                result = await asyncio.wait_for(
                    asyncio.to_thread(query.execute), timeout=self._timeout
                )
                return result.data or []

        except APIError as e:
            logger.error(f"Supabase API error in {function_name}: {str(e)}")
            raise DatabaseError(f"Database query failed: {str(e)}", operation=function_name)
        except asyncio.TimeoutError:
            logger.error(f"Database function {function_name} timed out")
            raise DatabaseError(
                f"Database query timed out after {self._timeout}s", operation=function_name
            )
        except DatabaseError:
            raise
        except Exception as e:
            logger.error(f"Unexpected database error in {function_name}: {str(e)}")
            raise DatabaseError(f"Database operation failed: {str(e)}", operation=function_name)

    async def health_check(self) -> Dict[str, Any]:
        """Check database connectivity and return health status."""
        try:
            if not self._client:
                raise DatabaseError("Database not initialized")

            query = (
                self._client.table("user_transaction_history")
                .select("count", count="exact")
                .limit(1)
            )
            await asyncio.to_thread(query.execute)

            return {
                "status": "healthy",
                "connection_pool_size": len(self._connection_pool),
                "active_connections": self._active_connections,
                "timestamp": datetime.utcnow().isoformat(),
            }
        except Exception as e:
            logger.error(f"Database health check failed: {str(e)}")
            return {
                "status": "unhealthy",
                "error": str(e),
                "timestamp": datetime.utcnow().isoformat(),
            }


db_manager = DatabaseManager()


async def get_database() -> DatabaseManager:
    """Dependency to get database manager instance."""
    return db_manager


async def init_database() -> None:
    """Initialize database connection on startup."""
    await db_manager.initialize()


async def close_database() -> None:
    """Close database connections on shutdown."""
    await db_manager.close()
