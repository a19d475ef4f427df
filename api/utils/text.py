def truncate(text: str, limit: int) -> str:
    """Cut text to `limit` characters, marking the cut with an ellipsis."""
    if text and len(text) > limit:
        return text[:limit] + "…"
    return text
