"""
Centralized logging configuration for the bot and the admin web server
Module loggers (logging.getLogger(__name__)) all propagate to the root logger
configured here
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
import os


def setup_logging(app_name='brainrot-bot', log_level=None, log_file=None):
    """
    Setup application logging with console and optional file handlers

    Args:
        app_name: Name shown in every console line
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file (enables file logging)

    Returns:
        logging.Logger: Logger named after the application
    """

    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO')
    if log_file is None:
        log_file = os.getenv('LOG_FILE') or None

    numeric_level = getattr(logging, str(log_level).upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(numeric_level)

    # Remove existing handlers to avoid duplicates on re-setup
    root.handlers.clear()

    detailed_formatter = logging.Formatter(
        fmt='[%(asctime)s] %(levelname)-8s [%(name)s.%(funcName)s:%(lineno)d] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    simple_formatter = logging.Formatter(
        fmt=f'[%(asctime)s] %(levelname)-8s {app_name} %(name)s: %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(simple_formatter)
    root.addHandler(console_handler)

    if log_file:
        try:
            log_dir = os.path.dirname(log_file)
            if log_dir and not os.path.exists(log_dir):
                os.makedirs(log_dir, exist_ok=True)

            # 10MB per file, keep 5 backups
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(detailed_formatter)
            root.addHandler(file_handler)

            root.info(f"File logging enabled: {log_file}")
        except OSError as e:
            root.error(f"Failed to setup file logging: {e}")

    # discord.py is very chatty at DEBUG
    logging.getLogger('discord').setLevel(max(numeric_level, logging.INFO))

    return logging.getLogger(app_name)


def log_api_call(logger, api_name, endpoint, status_code=None, duration=None):
    """Log external API calls"""
    msg = f"API Call: {api_name} -> {endpoint}"
    if status_code:
        msg += f" [HTTP {status_code}]"
    if duration:
        msg += f" ({duration:.2f}s)"
    logger.info(msg)


def log_error(logger, error, context=None):
    """Log error with optional context"""
    if context:
        logger.error(f"{context}: {error}", exc_info=True)
    else:
        logger.error(str(error), exc_info=True)
