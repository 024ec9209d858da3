"""JSON helpers shared by the store layer and the record models."""
import json
from datetime import datetime, date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional


def dumps(value: Any) -> str:
    """Serialize Python object to JSON string with Decimal precision."""
    def default_handler(obj: Any) -> Any:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        elif isinstance(obj, Decimal):
            return {"__decimal__": str(obj)}
        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")
    return json.dumps(value, default=default_handler)


def loads(value: str) -> Any:
    """Deserialize JSON string to Python object, reconstructing Decimals."""
    def object_hook(dct: Dict[str, Any]) -> Any:
        if "__decimal__" in dct:
            return Decimal(dct["__decimal__"])
        return dct
    return json.loads(value, object_hook=object_hook)


def to_decimal(value: Any, default: str = '0') -> Decimal:
    """Coerce numbers and numeric strings to Decimal (floats go through str)."""
    if value is None or value == '':
        return Decimal(default)
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f'Invalid numeric value: {value!r}')


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    # JS-style "Z" suffix from older data
    return datetime.fromisoformat(str(value).replace('Z', '+00:00'))


def parse_date(value: Any) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value)
    if 'T' in text:
        return parse_datetime(text).date()
    return date.fromisoformat(text)


def isoformat(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None
