def normalize_username(username: str | None) -> str:
    return "" if username is None else username.strip().lower()


def ordered_pair(a: str, b: str) -> tuple[str, str]:
    """Normalized key for the unordered pair {a, b}."""
    return (a, b) if a < b else (b, a)
