def to_uppercase(value: str | None) -> str | None:
    """
    Converts a string to uppercase if it's not None.
    """
    if value is None:
        return None
    return value.upper()


def to_lowercase(value: str | None) -> str | None:
    """
    Converts a string to lowercase if it's not None.
    """
    if value is None:
        return None
    return value.lower()


def split_csv(value: str | None) -> list[str]:
    """
    Split a comma-separated setting into trimmed, non-empty items.
    """
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]
