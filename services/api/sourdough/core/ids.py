import uuid


def is_valid_id(value: object) -> bool:
    """True when value is a canonical (lowercase) UUID string, the format of every row id we mint."""
    if not isinstance(value, str):
        return False
    try:
        return str(uuid.UUID(value)) == value
    except ValueError:
        return False
