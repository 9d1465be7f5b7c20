"""
Migration manager for the Admit database schema.

PostgREST cannot run DDL, so migrations are applied with psql or the
Supabase SQL editor. This module discovers the bundled SQL files, reads the
versions recorded in ``admit_migrations`` and renders what is still pending.
"""

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Set

from ..exceptions import DatabaseError

if TYPE_CHECKING:
    from ..utils.supabase import AdmitSupabaseClient

logger = logging.getLogger(__name__)

MIGRATIONS_TABLE = "admit_migrations"

# PostgreSQL undefined_table, and PostgREST's "relation not in schema cache"
MISSING_TABLE_CODES = {"42P01", "PGRST205"}

FILENAME_PATTERN = re.compile(r"^(?P<version>\d+)_(?P<name>\w+)$")


class Migration:
    """Represents a single database migration."""

    def __init__(self, version: str, name: str, path: Path) -> None:
        """
        Initialize a migration.

        Args:
            version: Migration version (e.g., "001")
            name: Migration name (e.g., "invitations")
            path: Path to the SQL file
        """
        self.version = version
        self.name = name
        self.path = path

    @classmethod
    def from_file(cls, path: Path) -> "Migration":
        """
        Create a Migration from a file path.

        Example:
            >>> Migration.from_file(Path("001_invitations.sql"))
            Migration(version=001, name=invitations)
        """
        match = FILENAME_PATTERN.match(path.stem)
        if match is None:
            raise ValueError(
                f"Invalid migration filename: {path.name}. Expected format: 001_name.sql"
            )
        return cls(version=match.group("version"), name=match.group("name"), path=path)

    @property
    def label(self) -> str:
        return f"{self.version}_{self.name}"

    def read_sql(self) -> str:
        return self.path.read_text()

    def __repr__(self) -> str:
        return f"Migration(version={self.version}, name={self.name})"


class MigrationManager:
    """
    Tracks Admit's SQL migrations.

    Example:
        ```python
        manager = MigrationManager(client)
        for migration in await manager.pending():
            print(migration.label)
        print(await manager.render_pending())
        ```
    """

    def __init__(
        self,
        client: "AdmitSupabaseClient",
        migrations_dir: Optional[Path] = None,
    ) -> None:
        """
        Initialize the migration manager.

        Args:
            client: Admit Supabase client
            migrations_dir: Directory holding the SQL files (defaults to the bundled ones)
        """
        self.client = client
        self.migrations_dir = migrations_dir or Path(__file__).parent / "versions"

    def discover_migrations(self) -> List[Migration]:
        """
        Discover all migration files, sorted by version.

        Files that don't follow the naming scheme are skipped with a warning.
        """
        if not self.migrations_dir.exists():
            return []

        migrations = []
        for path in self.migrations_dir.glob("*.sql"):
            try:
                migrations.append(Migration.from_file(path))
            except ValueError as e:
                logger.warning("Skipping migration file: %s", e)

        migrations.sort(key=lambda m: m.version)
        return migrations

    async def get_applied_migrations(self) -> Set[str]:
        """
        Get the versions recorded in admit_migrations.

        Returns an empty set when the table doesn't exist yet.
        """
        try:
            result = await self.client.execute(
                self.client.table(MIGRATIONS_TABLE).select("version")
            )
        except DatabaseError as e:
            if e.pg_code in MISSING_TABLE_CODES:
                logger.debug("%s not found; no migrations applied", MIGRATIONS_TABLE)
                return set()
            raise

        return {row["version"] for row in result.data or []}

    async def pending(self, target: Optional[str] = None) -> List[Migration]:
        """
        List migrations not yet applied, up to ``target`` when given.

        Args:
            target: Last migration version to include (default: latest)
        """
        applied = await self.get_applied_migrations()
        pending = [m for m in self.discover_migrations() if m.version not in applied]

        if target:
            pending = [m for m in pending if m.version <= target]

        return pending

    async def render_pending(self, target: Optional[str] = None) -> str:
        """
        Concatenate the SQL of every pending migration, in order.

        Each migration records its own version, so the output can be piped
        straight into psql.
        """
        parts = []
        for migration in await self.pending(target):
            parts.append(f"-- {migration.label}\n{migration.read_sql().rstrip()}\n")
        return "\n".join(parts)
