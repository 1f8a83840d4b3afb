"""
Database Schema Setup for the Market
Brainrot catalogue and last known crypto prices
"""

import logging

from core.database import run_schema

logger = logging.getLogger(__name__)

MARKET_SCHEMA_SQL = """
-- ============================================
-- MARKET DATABASE SCHEMA
-- ============================================

CREATE TABLE IF NOT EXISTS brainrots (
    id {id_column},
    server_id VARCHAR(32) NOT NULL,
    name TEXT NOT NULL,
    rarity VARCHAR(32) NOT NULL,
    mutation VARCHAR(32) NOT NULL DEFAULT 'Default',
    traits TEXT NOT NULL DEFAULT '[]',  -- JSON array, kept sorted
    income_rate BIGINT NOT NULL DEFAULT 0,  -- per second
    price_eur DOUBLE PRECISION NOT NULL DEFAULT 0,
    crypto VARCHAR(10),
    account TEXT,
    quantity INTEGER NOT NULL DEFAULT 1,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS crypto_prices (
    crypto VARCHAR(10) PRIMARY KEY,
    price_eur DOUBLE PRECISION NOT NULL,
    price_usd DOUBLE PRECISION,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- ============================================
-- INDICES FOR PERFORMANCE
-- ============================================

CREATE INDEX IF NOT EXISTS idx_brainrots_server ON brainrots(server_id);
CREATE INDEX IF NOT EXISTS idx_brainrots_server_rarity ON brainrots(server_id, rarity);
"""


def setup_market_database(engine):
    """
    Create the brainrots and crypto_prices tables

    Args:
        engine: SQLAlchemy engine instance

    Returns:
        bool: True if successful, False otherwise
    """
    return run_schema(engine, MARKET_SCHEMA_SQL, 'market')
