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

def strip_trailing_slash(value: str | None) -> str | None:
    """
    Removes a trailing slash (route prefixes are joined with paths that start with one).
    """
    if value is None:
        return None
    return value.rstrip("/")
