"""
Core modules shared by the bot and the admin web server

Modules:
- errors: domain error hierarchy with HTTP status codes
- database: engine creation and schema script execution
- admin_server: Flask admin API (giveaways, brainrots, crypto prices)
"""

from .errors import (
    MarketError,
    ValidationError,
    AuthenticationError,
    NotFoundError,
    ConflictError,
    PersistenceError,
    ExternalAPIError,
)

__all__ = [
    'MarketError',
    'ValidationError',
    'AuthenticationError',
    'NotFoundError',
    'ConflictError',
    'PersistenceError',
    'ExternalAPIError',
]
