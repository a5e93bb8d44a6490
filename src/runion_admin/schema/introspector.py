"""PostgreSQL column introspection via information_schema.

Used by the preflight check to confirm that every column the Entity Store
reads and writes exists in the live database.  Uses psycopg (v3) async
connections, independent of the SQLAlchemy engine used for data access.
"""

from psycopg import AsyncConnection


class SchemaIntrospector:
    """Reads table and column names from a live PostgreSQL database.

    Usage:
        async with SchemaIntrospector(database_url) as introspector:
            columns = await introspector.get_column_names()
    """

    # System tables never part of the application schema
    EXCLUDED_TABLES = {
        "_prisma_migrations",
        "schema_migrations",
        "pg_stat_statements",
        "spatial_ref_sys",
    }

    def __init__(self, database_url: str):
        self._database_url = database_url
        self._conn: AsyncConnection | None = None

    async def __aenter__(self) -> "SchemaIntrospector":
        url = self._database_url
        if "connect_timeout" not in url:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}connect_timeout=10"

        self._conn = await AsyncConnection.connect(url)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def test_connection(self) -> None:
        """Run ``SELECT 1``; raises on failure."""
        conn = self._require_conn()
        async with conn.cursor() as cur:
            await cur.execute("SELECT 1")
            await cur.fetchone()

    async def get_column_names(self, schema_name: str = "public") -> dict[str, set[str]]:
        """Get column names for all base tables in one query.

        Args:
            schema_name: PostgreSQL schema to query (default: public)

        Returns:
            Dict mapping table name to set of column names
        """
        conn = self._require_conn()
        query = """
            SELECT c.table_name, c.column_name
            FROM information_schema.columns c
            JOIN information_schema.tables t
              ON t.table_schema = c.table_schema
             AND t.table_name = c.table_name
            WHERE c.table_schema = %s
              AND t.table_type = 'BASE TABLE'
            ORDER BY c.table_name, c.ordinal_position
        """
        result: dict[str, set[str]] = {}
        async with conn.cursor() as cur:
            await cur.execute(query, (schema_name,))
            for table_name, column_name in await cur.fetchall():
                if table_name in self.EXCLUDED_TABLES:
                    continue
                result.setdefault(table_name, set()).add(column_name)
        return result

    def _require_conn(self) -> AsyncConnection:
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use async with statement.")
        return self._conn
