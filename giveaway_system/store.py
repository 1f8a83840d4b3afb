"""
Giveaway Store
Plain persistence of giveaway rows. Holds no business rules: state checks
live in GiveawayService, this class only reads and writes.
"""

import json
import time
import logging
from sqlalchemy import text

from utils.error_helpers import db_error_handler

logger = logging.getLogger(__name__)

# Columns the service is allowed to change after creation
UPDATABLE_FIELDS = ('ended', 'winners', 'participants', 'is_rigged', 'forced_winner_id')
JSON_FIELDS = ('winners', 'participants')

SELECT_COLUMNS = """
    id, server_id, chat_message_id, channel_id, prize, winners_count,
    end_time, ended, winners, participants, is_rigged, forced_winner_id, created_at
"""


def now_ms():
    """Current time in epoch milliseconds"""
    return int(time.time() * 1000)


def _row_to_giveaway(row):
    if row is None:
        return None
    giveaway = dict(row._mapping)
    for field in JSON_FIELDS:
        raw = giveaway.get(field)
        giveaway[field] = json.loads(raw) if raw else []
    giveaway['ended'] = bool(giveaway['ended'])
    giveaway['is_rigged'] = bool(giveaway['is_rigged'])
    giveaway['end_time'] = int(giveaway['end_time'])
    if giveaway.get('created_at') is not None and not isinstance(giveaway['created_at'], str):
        giveaway['created_at'] = giveaway['created_at'].isoformat()
    return giveaway


class GiveawayStore:
    """SQL access to the giveaways table"""

    def __init__(self, engine):
        self.engine = engine

    @db_error_handler
    def insert(self, giveaway):
        """
        Insert a new giveaway row

        Args:
            giveaway: dict with server_id, chat_message_id, channel_id, prize,
                      winners_count and end_time

        Returns:
            int: id of the new row
        """
        with self.engine.begin() as conn:
            result = conn.execute(text("""
                INSERT INTO giveaways
                    (server_id, chat_message_id, channel_id, prize, winners_count,
                     end_time, ended, winners, participants, is_rigged)
                VALUES
                    (:server_id, :chat_message_id, :channel_id, :prize, :winners_count,
                     :end_time, :ended, :winners, :participants, :is_rigged)
                RETURNING id
            """), {
                'server_id': str(giveaway['server_id']),
                'chat_message_id': str(giveaway['chat_message_id']),
                'channel_id': str(giveaway['channel_id']),
                'prize': giveaway['prize'],
                'winners_count': giveaway['winners_count'],
                'end_time': giveaway['end_time'],
                'ended': False,
                'winners': json.dumps(giveaway.get('winners', [])),
                'participants': json.dumps(giveaway.get('participants', [])),
                'is_rigged': False,
            })
            giveaway_id = result.scalar()

        logger.debug(f"Inserted giveaway #{giveaway_id} for server {giveaway['server_id']}")
        return giveaway_id

    @db_error_handler
    def find_by_id(self, giveaway_id):
        with self.engine.connect() as conn:
            row = conn.execute(text(f"""
                SELECT {SELECT_COLUMNS} FROM giveaways WHERE id = :id
            """), {'id': giveaway_id}).fetchone()
        return _row_to_giveaway(row)

    @db_error_handler
    def find_by_chat_message_id(self, chat_message_id):
        with self.engine.connect() as conn:
            row = conn.execute(text(f"""
                SELECT {SELECT_COLUMNS} FROM giveaways WHERE chat_message_id = :message_id
            """), {'message_id': str(chat_message_id)}).fetchone()
        return _row_to_giveaway(row)

    @db_error_handler
    def find_all_for_server(self, server_id, active_only=False, now=None):
        """
        List a server's giveaways, newest first

        active_only keeps the giveaways that are not ended and whose end
        time is still in the future.
        """
        query = f"SELECT {SELECT_COLUMNS} FROM giveaways WHERE server_id = :server_id"
        params = {'server_id': str(server_id)}
        if active_only:
            query += " AND ended = :ended AND end_time > :now"
            params['ended'] = False
            params['now'] = now if now is not None else now_ms()
        query += " ORDER BY created_at DESC, id DESC"

        with self.engine.connect() as conn:
            rows = conn.execute(text(query), params).fetchall()
        return [_row_to_giveaway(row) for row in rows]

    @db_error_handler
    def find_expired_unended(self, now=None):
        with self.engine.connect() as conn:
            rows = conn.execute(text(f"""
                SELECT {SELECT_COLUMNS} FROM giveaways
                WHERE ended = :ended AND end_time <= :now
                ORDER BY end_time ASC
            """), {'ended': False, 'now': now if now is not None else now_ms()}).fetchall()
        return [_row_to_giveaway(row) for row in rows]

    @db_error_handler
    def find_pending(self, now=None):
        """Unended giveaways whose end time is still ahead"""
        with self.engine.connect() as conn:
            rows = conn.execute(text(f"""
                SELECT {SELECT_COLUMNS} FROM giveaways
                WHERE ended = :ended AND end_time > :now
                ORDER BY end_time ASC
            """), {'ended': False, 'now': now if now is not None else now_ms()}).fetchall()
        return [_row_to_giveaway(row) for row in rows]

    @db_error_handler
    def update(self, giveaway_id, fields, expected_ended=None):
        """
        Apply a partial update

        Args:
            giveaway_id: Row to update
            fields: dict of column -> value (only UPDATABLE_FIELDS)
            expected_ended: When not None, the update only applies if the
                            row's current ``ended`` equals this value

        Returns:
            bool: True if a row was changed
        """
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise KeyError(f"Cannot update giveaway columns: {', '.join(sorted(unknown))}")

        params = {'id': giveaway_id}
        assignments = []
        for column, value in fields.items():
            if column in JSON_FIELDS:
                value = json.dumps(value)
            assignments.append(f"{column} = :{column}")
            params[column] = value

        query = f"UPDATE giveaways SET {', '.join(assignments)} WHERE id = :id"
        if expected_ended is not None:
            query += " AND ended = :expected_ended"
            params['expected_ended'] = expected_ended

        with self.engine.begin() as conn:
            result = conn.execute(text(query), params)
            return result.rowcount > 0

    @db_error_handler
    def delete(self, giveaway_id):
        with self.engine.begin() as conn:
            result = conn.execute(text("DELETE FROM giveaways WHERE id = :id"), {'id': giveaway_id})
            return result.rowcount > 0
