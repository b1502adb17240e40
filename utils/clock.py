from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the TIMESTAMP columns in the schema."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
