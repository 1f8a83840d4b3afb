"""
Database helpers shared by the bot and the admin web server
Engine creation and schema script execution for SQLite and PostgreSQL
"""

import os
import logging
from sqlalchemy import create_engine, text

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///brainrots.db"


def get_database_url():
    """DATABASE_URL from the environment, SQLite file when unset"""
    database_url = os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL
    # Heroku/Railway style URLs are not accepted by SQLAlchemy 1.4+
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    return database_url


def create_db_engine(database_url=None):
    database_url = database_url or get_database_url()
    if database_url.startswith("sqlite"):
        engine = create_engine(database_url)
    else:
        engine = create_engine(database_url, pool_pre_ping=True)
    logger.info(f"Database engine ready ({engine.dialect.name})")
    return engine


def id_column_for(engine):
    """Auto-increment primary key definition for the engine's dialect"""
    if engine.dialect.name == 'sqlite':
        return 'INTEGER PRIMARY KEY AUTOINCREMENT'
    return 'SERIAL PRIMARY KEY'


def split_statements(schema_sql):
    """
    Split a schema script into single statements
    SQLite can only execute one statement at a time
    """
    statements = []
    current_statement = []

    for line in schema_sql.split('\n'):
        stripped = line.strip()
        if not stripped or stripped.startswith('--'):
            continue

        current_statement.append(line)

        if stripped.endswith(';'):
            statements.append('\n'.join(current_statement))
            current_statement = []

    return statements


def run_schema(engine, schema_sql, label):
    """
    Execute every statement of a schema script inside one transaction

    ``{id_column}`` in the script is replaced with the dialect's
    auto-increment primary key.

    Returns:
        bool: True if successful, False otherwise
    """
    try:
        logger.info(f"Setting up {label} database schema...")

        with engine.begin() as conn:
            for statement in split_statements(schema_sql.format(id_column=id_column_for(engine))):
                conn.execute(text(statement))

        logger.info(f"✅ {label.capitalize()} database schema ready")
        return True

    except Exception as e:
        logger.error(f"❌ Failed to setup {label} database: {e}")
        return False
