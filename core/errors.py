"""
Error types shared by the giveaway system, the market catalogue and the admin API

Every error carries an HTTP-style status code so the web layer can map it
directly and the command layer can show the message to the user.
"""


class MarketError(Exception):
    """Base class for every domain error raised by the bot"""

    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': self.__class__.__name__, 'message': self.message}


class ValidationError(MarketError):
    """Malformed input: bad winner count, bad duration, unknown rarity..."""

    status_code = 400

    def __init__(self, message, field=None):
        super().__init__(message)
        self.field = field

    def to_dict(self):
        data = super().to_dict()
        if self.field:
            data['field'] = self.field
        return data


class AuthenticationError(MarketError):
    status_code = 401

    def __init__(self, message="Authentication required"):
        super().__init__(message)


class NotFoundError(MarketError):
    """Unknown identifier"""

    status_code = 404

    def __init__(self, resource, resource_id=None):
        if resource_id is not None:
            message = f"{resource} with id {resource_id} not found"
        else:
            message = f"{resource} not found"
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(MarketError):
    """
    Operation not allowed in the current state of the record

    ``reason`` is one of the constants below so callers can tell
    "already ended" apart from "not yet ended" without parsing messages.
    """

    status_code = 409

    ALREADY_ENDED = 'already_ended'
    NOT_ENDED = 'not_ended'
    CLOSED = 'closed'
    DUPLICATE = 'duplicate'

    def __init__(self, message, reason=None):
        super().__init__(message)
        self.reason = reason

    def to_dict(self):
        data = super().to_dict()
        if self.reason:
            data['reason'] = self.reason
        return data


class PersistenceError(MarketError):
    """Database I/O failure"""

    status_code = 500

    def __init__(self, message, original=None):
        super().__init__(message)
        self.original = original


class ExternalAPIError(MarketError):
    """A price oracle (CoinGecko, CoinCap) failed or answered garbage"""

    status_code = 503

    def __init__(self, service, message, status=None):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status = status
