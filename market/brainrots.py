"""
Brainrot Catalogue
Stock of collectible items per Discord server, with traits, income and prices
"""

import json
import logging
from sqlalchemy import text

from core.errors import ValidationError, NotFoundError, ConflictError
from utils.error_helpers import db_error_handler
from . import enums
from .config import SUPPORTED_CRYPTOS
from .parsers import parse_price

logger = logging.getLogger(__name__)

BRAINROT_COLUMNS = """
    id, server_id, name, rarity, mutation, traits, income_rate, price_eur,
    crypto, account, quantity, created_at, updated_at
"""

UPDATABLE_FIELDS = ('name', 'rarity', 'mutation', 'traits', 'income_rate',
                    'price_eur', 'crypto', 'account', 'quantity')


def brainrot_key(record):
    """
    Structural identity of a brainrot

    Two entries with the same key are the same item and are merged by
    adding quantities. Trait order does not matter.
    """
    return (
        str(record['server_id']),
        record['name'].strip().casefold(),
        record['rarity'],
        record.get('mutation') or enums.DEFAULT_MUTATION,
        tuple(sorted(record.get('traits') or [])),
        (record.get('account') or '').strip().casefold(),
        record.get('crypto') or '',
    )


def _row_to_brainrot(row):
    if row is None:
        return None
    brainrot = dict(row._mapping)
    brainrot['traits'] = json.loads(brainrot['traits']) if brainrot.get('traits') else []
    brainrot['income_rate'] = int(brainrot['income_rate'] or 0)
    brainrot['price_eur'] = float(brainrot['price_eur'] or 0)
    brainrot['quantity'] = int(brainrot['quantity'] or 0)
    for field in ('created_at', 'updated_at'):
        if brainrot.get(field) is not None and not isinstance(brainrot[field], str):
            brainrot[field] = brainrot[field].isoformat()
    return brainrot


class BrainrotStore:
    """SQL access to the brainrots table"""

    def __init__(self, engine):
        self.engine = engine

    @db_error_handler
    def insert(self, brainrot):
        with self.engine.begin() as conn:
            result = conn.execute(text("""
                INSERT INTO brainrots
                    (server_id, name, rarity, mutation, traits, income_rate,
                     price_eur, crypto, account, quantity)
                VALUES
                    (:server_id, :name, :rarity, :mutation, :traits, :income_rate,
                     :price_eur, :crypto, :account, :quantity)
                RETURNING id
            """), dict(brainrot, traits=json.dumps(brainrot['traits'])))
            return result.scalar()

    @db_error_handler
    def find_by_id(self, brainrot_id):
        with self.engine.connect() as conn:
            row = conn.execute(text(f"""
                SELECT {BRAINROT_COLUMNS} FROM brainrots WHERE id = :id
            """), {'id': brainrot_id}).fetchone()
        return _row_to_brainrot(row)

    @db_error_handler
    def find_all_for_server(self, server_id, rarity=None, mutation=None, account=None):
        query = f"SELECT {BRAINROT_COLUMNS} FROM brainrots WHERE server_id = :server_id"
        params = {'server_id': str(server_id)}
        if rarity:
            query += " AND rarity = :rarity"
            params['rarity'] = rarity
        if mutation:
            query += " AND mutation = :mutation"
            params['mutation'] = mutation
        if account:
            query += " AND LOWER(account) = :account"
            params['account'] = account.strip().lower()
        query += " ORDER BY id ASC"

        with self.engine.connect() as conn:
            rows = conn.execute(text(query), params).fetchall()
        return [_row_to_brainrot(row) for row in rows]

    @db_error_handler
    def update(self, brainrot_id, fields):
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise KeyError(f"Cannot update brainrot columns: {', '.join(sorted(unknown))}")

        params = {'id': brainrot_id}
        assignments = []
        for column, value in fields.items():
            if column == 'traits':
                value = json.dumps(value)
            assignments.append(f"{column} = :{column}")
            params[column] = value
        assignments.append("updated_at = CURRENT_TIMESTAMP")

        with self.engine.begin() as conn:
            result = conn.execute(text(
                f"UPDATE brainrots SET {', '.join(assignments)} WHERE id = :id"
            ), params)
            return result.rowcount > 0

    @db_error_handler
    def delete(self, brainrot_id):
        with self.engine.begin() as conn:
            result = conn.execute(text("DELETE FROM brainrots WHERE id = :id"), {'id': brainrot_id})
            return result.rowcount > 0


class BrainrotService:
    """Validation, merging and statistics for the brainrot catalogue"""

    def __init__(self, store):
        self.store = store

    def _clean(self, data, partial=False):
        """Validate user input and convert it to column values"""
        cleaned = {}

        if 'name' in data or not partial:
            name = str(data.get('name') or '').strip()
            if not name:
                raise ValidationError("Name is required", field='name')
            cleaned['name'] = name

        if 'rarity' in data or not partial:
            if not enums.is_valid_rarity(data.get('rarity')):
                raise ValidationError(f"Unknown rarity '{data.get('rarity')}'", field='rarity')
            cleaned['rarity'] = enums.normalize_rarity(data['rarity'])

        if 'mutation' in data or not partial:
            if not enums.is_valid_mutation(data.get('mutation')):
                raise ValidationError(f"Unknown mutation '{data.get('mutation')}'", field='mutation')
            cleaned['mutation'] = enums.normalize_mutation(data.get('mutation'))

        if 'traits' in data or not partial:
            cleaned['traits'] = self._clean_traits(data.get('traits'))

        if 'income_rate' in data or not partial:
            income = data.get('income_rate')
            cleaned['income_rate'] = parse_price(income) if income not in (None, '') else 0

        if 'price_eur' in data or not partial:
            cleaned['price_eur'] = self._clean_price(data.get('price_eur'))

        if 'crypto' in data or not partial:
            crypto = data.get('crypto')
            if crypto:
                crypto = str(crypto).strip().upper()
                if crypto not in SUPPORTED_CRYPTOS:
                    raise ValidationError(f"Unsupported cryptocurrency '{crypto}'", field='crypto')
            cleaned['crypto'] = crypto or None

        if 'account' in data or not partial:
            account = data.get('account')
            cleaned['account'] = str(account).strip() if account else None

        if 'quantity' in data or not partial:
            quantity = data.get('quantity', 1)
            try:
                quantity = int(quantity)
            except (TypeError, ValueError):
                raise ValidationError("Quantity must be an integer", field='quantity')
            if quantity < 1:
                raise ValidationError("Quantity must be at least 1", field='quantity')
            cleaned['quantity'] = quantity

        return cleaned

    @staticmethod
    def _clean_traits(traits):
        if not traits:
            return []
        if isinstance(traits, str):
            traits = [t for t in traits.split(',') if t.strip()]
        invalid = [trait for trait in traits if not enums.is_valid_trait(trait)]
        if invalid:
            raise ValidationError(f"Unknown trait '{invalid[0]}'", field='traits')
        return sorted({enums.normalize_trait(trait) for trait in traits})

    @staticmethod
    def _clean_price(price):
        if price in (None, ''):
            return 0.0
        try:
            value = float(str(price).replace(',', '.'))
        except ValueError:
            raise ValidationError(f"Invalid EUR price '{price}'", field='price_eur')
        if value < 0:
            raise ValidationError("Price cannot be negative", field='price_eur')
        return round(value, 2)

    async def get_all(self, server_id, rarity=None, mutation=None, account=None):
        if rarity:
            if not enums.is_valid_rarity(rarity):
                raise ValidationError("Unknown rarity filter", field='rarity')
            rarity = enums.normalize_rarity(rarity)
        if mutation:
            if not enums.is_valid_mutation(mutation):
                raise ValidationError("Unknown mutation filter", field='mutation')
            mutation = enums.normalize_mutation(mutation)
        return self.store.find_all_for_server(server_id, rarity=rarity, mutation=mutation, account=account)

    async def get_by_id(self, brainrot_id):
        brainrot = self.store.find_by_id(brainrot_id)
        if brainrot is None:
            raise NotFoundError("Brainrot", brainrot_id)
        return brainrot

    async def add(self, server_id, data):
        """
        Add a brainrot to a server's stock

        If an item with the same structural key already exists its quantity
        is increased instead of creating a second row.

        Returns:
            int: id of the inserted or merged row
        """
        record = self._clean(data)
        record['server_id'] = str(server_id)
        key = brainrot_key(record)

        for existing in self.store.find_all_for_server(server_id, rarity=record['rarity'],
                                                       mutation=record['mutation']):
            if brainrot_key(existing) == key:
                quantity = existing['quantity'] + record['quantity']
                self.store.update(existing['id'], {'quantity': quantity,
                                                   'price_eur': record['price_eur'],
                                                   'income_rate': record['income_rate']})
                logger.info(f"📦 Merged {record['name']} into brainrot #{existing['id']} (x{quantity})")
                return existing['id']

        brainrot_id = self.store.insert(record)
        logger.info(f"📦 Added brainrot #{brainrot_id} {record['name']} ({record['rarity']}) on server {server_id}")
        return brainrot_id

    async def update(self, brainrot_id, data):
        await self.get_by_id(brainrot_id)
        fields = self._clean(data, partial=True)
        if not fields:
            raise ValidationError("Nothing to update")
        self.store.update(brainrot_id, fields)
        return await self.get_by_id(brainrot_id)

    async def delete(self, brainrot_id):
        if not self.store.delete(brainrot_id):
            raise NotFoundError("Brainrot", brainrot_id)
        logger.info(f"🗑️ Deleted brainrot #{brainrot_id}")
        return True

    async def add_trait(self, brainrot_id, trait):
        brainrot = await self.get_by_id(brainrot_id)
        if not enums.is_valid_trait(trait):
            raise ValidationError(f"Unknown trait '{trait}'", field='trait')
        canonical = enums.normalize_trait(trait)
        if canonical in brainrot['traits']:
            raise ConflictError(f"Trait {canonical} is already on this brainrot", ConflictError.DUPLICATE)

        traits = sorted(brainrot['traits'] + [canonical])
        self.store.update(brainrot_id, {'traits': traits})
        brainrot['traits'] = traits
        return brainrot

    async def remove_trait(self, brainrot_id, trait):
        brainrot = await self.get_by_id(brainrot_id)
        canonical = enums.normalize_trait(trait)
        if canonical is None or canonical not in brainrot['traits']:
            raise NotFoundError(f"Trait '{trait}' on brainrot", brainrot_id)

        traits = [t for t in brainrot['traits'] if t != canonical]
        self.store.update(brainrot_id, {'traits': traits})
        brainrot['traits'] = traits
        return brainrot

    async def get_stats(self, server_id):
        brainrots = self.store.find_all_for_server(server_id)

        by_rarity = {}
        for brainrot in brainrots:
            by_rarity[brainrot['rarity']] = by_rarity.get(brainrot['rarity'], 0) + brainrot['quantity']

        return {
            'total_brainrots': sum(b['quantity'] for b in brainrots),
            'total_value': round(sum(b['price_eur'] * b['quantity'] for b in brainrots), 2),
            'unique_types': len({b['name'].casefold() for b in brainrots}),
            'by_rarity': dict(sorted(by_rarity.items(), key=lambda item: enums.rarity_order(item[0]))),
        }
