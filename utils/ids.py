import uuid
from typing import Union

from errors import not_found


def as_uuid(value: Union[str, uuid.UUID, None], what: str = "Resource") -> uuid.UUID:
    """Coerce a route/body id. A malformed id can never resolve, so it is reported as not found."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise not_found(f"{what} not found")
