"""JSON provider for API responses: Decimals as strings, ISO dates, enum values."""
import enum
from datetime import date, datetime
from decimal import Decimal

from flask.json.provider import DefaultJSONProvider


class DecimalJSONProvider(DefaultJSONProvider):
    """Money stays exact on the wire: Decimal('36.75') -> "36.75"."""

    @staticmethod
    def default(o):
        if isinstance(o, Decimal):
            return str(o)
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        if isinstance(o, enum.Enum):
            return o.value
        return DefaultJSONProvider.default(o)
