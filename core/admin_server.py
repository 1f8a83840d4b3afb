"""
Admin Web API
JSON endpoints for the web panel: giveaways, brainrot stock and crypto prices

Served by gunicorn from combined_server.py ('core.admin_server:create_app(configure_logging=True)').
Shares the database with the bot process; giveaways created here are ended
by the bot's scheduler sweep.
"""

import os
import asyncio
import secrets
import logging
from flask import Flask, request, jsonify

from core.database import create_db_engine
from core.errors import ValidationError, NotFoundError
from giveaway_system.config import MIN_GIVEAWAY_DURATION_MS, MAX_GIVEAWAY_WINNERS
from giveaway_system.database import setup_giveaway_database
from giveaway_system.service import GiveawayService
from giveaway_system.store import GiveawayStore, now_ms
from market.brainrots import BrainrotService, BrainrotStore
from market.crypto import CryptoPriceService
from market.database import setup_market_database
from market.parsers import parse_duration, format_duration
from utils.logging_config import setup_logging
from utils.error_helpers import (
    api_error_handler,
    require_admin,
    json_success,
    validate_required_fields,
    safe_int,
)

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run a service coroutine from a synchronous Flask view"""
    return asyncio.run(coro)


def parse_web_duration(value):
    """Abbreviated duration ("2h") or a plain number of minutes"""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value * 60 * 1000)
    value = str(value).strip()
    if value.isdigit():
        return int(value) * 60 * 1000
    return parse_duration(value)


def create_app(engine=None, crypto_service=None, admin_password=None, configure_logging=False):
    """
    Build the admin Flask application

    Args:
        engine: SQLAlchemy engine (created from DATABASE_URL when omitted)
        crypto_service: CryptoPriceService override, mainly for tests
        admin_password: overrides the ADMIN_PASSWORD environment variable
        configure_logging: set up root logging (gunicorn workers)
    """
    if configure_logging:
        setup_logging('admin-api')

    app = Flask(__name__)
    app.config['ADMIN_PASSWORD'] = admin_password or os.getenv('ADMIN_PASSWORD')

    if engine is None:
        engine = create_db_engine()
    setup_giveaway_database(engine)
    setup_market_database(engine)

    giveaways = GiveawayService(GiveawayStore(engine))
    brainrots = BrainrotService(BrainrotStore(engine))
    crypto = crypto_service or CryptoPriceService(engine)

    if not app.config['ADMIN_PASSWORD']:
        logger.warning("⚠️ ADMIN_PASSWORD not set, admin endpoints will reject every request")

    def get_server_giveaway(server_id, giveaway_id):
        giveaway = run_async(giveaways.get_by_id(giveaway_id))
        if giveaway['server_id'] != str(server_id):
            raise NotFoundError("Giveaway", giveaway_id)
        return giveaway

    def get_server_brainrot(server_id, brainrot_id):
        brainrot = run_async(brainrots.get_by_id(brainrot_id))
        if brainrot['server_id'] != str(server_id):
            raise NotFoundError("Brainrot", brainrot_id)
        return brainrot

    # -------------------------
    # Health
    # -------------------------

    @app.route('/health')
    def health():
        """Health check endpoint"""
        return jsonify({"status": "healthy", "database": engine.dialect.name}), 200

    # -------------------------
    # Giveaways
    # -------------------------

    @app.route('/api/giveaways/<server_id>', methods=['GET'])
    @api_error_handler
    @require_admin
    def list_giveaways(server_id):
        active_only = request.args.get('active', '').lower() in ('1', 'true', 'yes')
        return json_success(run_async(giveaways.get_all(server_id, active_only=active_only)))

    @app.route('/api/giveaways/<server_id>/<int:giveaway_id>', methods=['GET'])
    @api_error_handler
    @require_admin
    def get_giveaway(server_id, giveaway_id):
        return json_success(get_server_giveaway(server_id, giveaway_id))

    @app.route('/api/giveaways/<server_id>', methods=['POST'])
    @api_error_handler
    @require_admin
    def create_giveaway(server_id):
        data = request.get_json(silent=True) or {}
        is_valid, missing = validate_required_fields(data, ['prize', 'winners_count', 'duration'])
        if not is_valid:
            raise ValidationError(f"Missing fields: {', '.join(missing)}")

        duration_ms = parse_web_duration(data['duration'])
        if duration_ms < MIN_GIVEAWAY_DURATION_MS:
            raise ValidationError(
                f"Duration must be at least {format_duration(MIN_GIVEAWAY_DURATION_MS)}", field='duration'
            )
        winners_count = safe_int(data['winners_count'], default=0)
        if winners_count > MAX_GIVEAWAY_WINNERS:
            raise ValidationError(f"At most {MAX_GIVEAWAY_WINNERS} winners", field='winners_count')

        giveaway_id = run_async(giveaways.create(
            server_id=server_id,
            prize=data['prize'],
            winners_count=winners_count,
            duration_ms=duration_ms,
            channel_id=data.get('channel_id') or 'web-panel',
            chat_message_id=data.get('chat_message_id') or f"web-{now_ms()}-{secrets.token_hex(3)}",
        ))
        logger.info(f"Giveaway #{giveaway_id} created from the web panel for server {server_id}")
        return json_success(run_async(giveaways.get_by_id(giveaway_id)), status_code=201)

    @app.route('/api/giveaways/<server_id>/<int:giveaway_id>/end', methods=['POST'])
    @api_error_handler
    @require_admin
    def end_giveaway(server_id, giveaway_id):
        get_server_giveaway(server_id, giveaway_id)
        data = request.get_json(silent=True) or {}
        winner_id = data.get('winner_id')
        if winner_id:
            giveaway = run_async(giveaways.end_giveaway_with_winner(giveaway_id, str(winner_id)))
        else:
            giveaway = run_async(giveaways.end_giveaway(giveaway_id))
        return json_success(giveaway, message="Giveaway ended")

    @app.route('/api/giveaways/<server_id>/<int:giveaway_id>/reroll', methods=['POST'])
    @api_error_handler
    @require_admin
    def reroll_giveaway(server_id, giveaway_id):
        get_server_giveaway(server_id, giveaway_id)
        return json_success(run_async(giveaways.reroll_winners(giveaway_id)), message="Winners rerolled")

    @app.route('/api/giveaways/<server_id>/<int:giveaway_id>', methods=['DELETE'])
    @api_error_handler
    @require_admin
    def delete_giveaway(server_id, giveaway_id):
        get_server_giveaway(server_id, giveaway_id)
        run_async(giveaways.delete(giveaway_id))
        return json_success(message="Giveaway deleted")

    # -------------------------
    # Brainrots
    # -------------------------

    @app.route('/api/brainrots/<server_id>', methods=['GET'])
    @api_error_handler
    @require_admin
    def list_brainrots(server_id):
        return json_success(run_async(brainrots.get_all(
            server_id,
            rarity=request.args.get('rarity'),
            mutation=request.args.get('mutation'),
            account=request.args.get('account'),
        )))

    @app.route('/api/brainrots/<server_id>', methods=['POST'])
    @api_error_handler
    @require_admin
    def add_brainrot(server_id):
        data = request.get_json(silent=True) or {}
        brainrot_id = run_async(brainrots.add(server_id, data))
        return json_success(run_async(brainrots.get_by_id(brainrot_id)), status_code=201)

    @app.route('/api/brainrots/<server_id>/stats', methods=['GET'])
    @api_error_handler
    @require_admin
    def brainrot_stats(server_id):
        return json_success(run_async(brainrots.get_stats(server_id)))

    @app.route('/api/brainrots/<server_id>/<int:brainrot_id>', methods=['PUT'])
    @api_error_handler
    @require_admin
    def update_brainrot(server_id, brainrot_id):
        get_server_brainrot(server_id, brainrot_id)
        data = request.get_json(silent=True) or {}
        return json_success(run_async(brainrots.update(brainrot_id, data)), message="Brainrot updated")

    @app.route('/api/brainrots/<server_id>/<int:brainrot_id>', methods=['DELETE'])
    @api_error_handler
    @require_admin
    def delete_brainrot(server_id, brainrot_id):
        get_server_brainrot(server_id, brainrot_id)
        run_async(brainrots.delete(brainrot_id))
        return json_success(message="Brainrot deleted")

    # -------------------------
    # Crypto (prices are public, conversion needs admin)
    # -------------------------

    @app.route('/api/crypto/prices', methods=['GET'])
    @api_error_handler
    def crypto_prices():
        return json_success(run_async(crypto.get_all_prices()))

    @app.route('/api/crypto/convert', methods=['GET'])
    @api_error_handler
    @require_admin
    def crypto_convert():
        symbol = request.args.get('symbol', '')
        amount = request.args.get('amount')
        result = run_async(crypto.convert_eur_to_crypto(amount, symbol))
        return json_success({'amount_eur': float(amount), 'symbol': symbol.upper(), 'amount_crypto': result})

    logger.info("✅ Admin API ready")
    return app
