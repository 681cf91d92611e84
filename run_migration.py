"""
Apply SQL migrations to the daycare database.

Usage:
    python run_migration.py                      # every migrations/*.sql, in name order
    python run_migration.py migrations/001_row_level_security.sql
"""
import logging
import sys
from pathlib import Path

from sqlalchemy import text

logging.basicConfig(level=logging.INFO, format='%(message)s')
logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def split_statements(sql: str) -> list[str]:
    """Split a migration file into statements, dropping full-line comments"""
    lines = [line for line in sql.splitlines() if not line.strip().startswith('--')]
    return [s.strip() for s in '\n'.join(lines).split(';') if s.strip()]


def migration_files(paths: list[str]) -> list[Path]:
    if paths:
        return [Path(p) for p in paths]
    return sorted(MIGRATIONS_DIR.glob("*.sql"))


def run_migration(migration_file_path: str, engine=None):
    """Run one SQL migration file inside a single transaction"""
    if engine is None:
        from daycare.database import engine

    migration_file = Path(migration_file_path)
    if not migration_file.is_file():
        logger.error(f"Migration file not found: {migration_file}")
        sys.exit(1)

    statements = split_statements(migration_file.read_text())
    logger.info(f"📄 {migration_file.name}: {len(statements)} statement(s)")

    # one transaction per file
    with engine.begin() as conn:
        for i, stmt in enumerate(statements, 1):
            logger.debug(f"Executing statement {i}/{len(statements)}")
            conn.execute(text(stmt))

    logger.info(f"✅ Applied {migration_file.name}")


if __name__ == "__main__":
    files = migration_files(sys.argv[1:])
    if not files:
        logger.error(f"No migration files found in {MIGRATIONS_DIR}")
        sys.exit(1)

    for path in files:
        try:
            run_migration(str(path))
        except Exception as e:
            logger.error(f"❌ Migration {path.name} failed: {e}")
            sys.exit(1)
