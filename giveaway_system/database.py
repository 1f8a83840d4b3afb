"""
Database Schema Setup for the Giveaway System
Creates the giveaways table and its indices
"""

import logging

from core.database import run_schema

logger = logging.getLogger(__name__)

# {id_column} is filled in per dialect (SERIAL on PostgreSQL, INTEGER on SQLite)
GIVEAWAY_SCHEMA_SQL = """
-- ============================================
-- GIVEAWAY SYSTEM DATABASE SCHEMA
-- ============================================

CREATE TABLE IF NOT EXISTS giveaways (
    id {id_column},
    server_id VARCHAR(32) NOT NULL,
    chat_message_id VARCHAR(64) NOT NULL UNIQUE,
    channel_id VARCHAR(64) NOT NULL,
    prize TEXT NOT NULL,
    winners_count INTEGER NOT NULL DEFAULT 1,
    end_time BIGINT NOT NULL,  -- epoch milliseconds
    ended BOOLEAN NOT NULL DEFAULT FALSE,
    winners TEXT NOT NULL DEFAULT '[]',  -- JSON array of user ids
    participants TEXT NOT NULL DEFAULT '[]',  -- JSON array of user ids
    is_rigged BOOLEAN NOT NULL DEFAULT FALSE,
    forced_winner_id VARCHAR(32),
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- ============================================
-- INDICES FOR PERFORMANCE
-- ============================================

CREATE INDEX IF NOT EXISTS idx_giveaways_server_ended ON giveaways(server_id, ended);
CREATE INDEX IF NOT EXISTS idx_giveaways_end_time ON giveaways(end_time);
"""


def setup_giveaway_database(engine):
    """
    Create the giveaways table and indices

    Args:
        engine: SQLAlchemy engine instance

    Returns:
        bool: True if successful, False otherwise
    """
    return run_schema(engine, GIVEAWAY_SCHEMA_SQL, 'giveaway')
