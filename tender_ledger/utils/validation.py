"""
Argument parsing shared by the services
"""
from uuid import UUID

from tender_ledger.core.errors import InvalidInput


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_fields(**fields):
    """Raise InvalidInput naming every blank field"""
    missing = [name for name, value in fields.items() if is_blank(value)]
    if missing:
        raise InvalidInput(f"missing required fields: {', '.join(missing)}")


def parse_id(value, field: str = "id") -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise InvalidInput(f"invalid {field}: {value}")


def parse_version(value) -> int:
    try:
        version = int(value)
    except (TypeError, ValueError):
        raise InvalidInput("invalid version number")
    if version < 1:
        raise InvalidInput("invalid version number")
    return version
