"""
Market Package
Brainrot catalogue, abbreviation parsers and crypto prices
"""

from .brainrots import BrainrotStore, BrainrotService
from .crypto import CryptoPriceService
from .database import setup_market_database
from .parsers import parse_price, format_price, parse_duration, format_duration

__all__ = [
    'BrainrotStore',
    'BrainrotService',
    'CryptoPriceService',
    'setup_market_database',
    'parse_price',
    'format_price',
    'parse_duration',
    'format_duration',
]
