"""Helpers for keeping credentials out of logs."""


def mask_api_key(api_key: str) -> str:
    """
    Mask API key for display purposes (show only last 4 characters).
    """
    if not api_key or len(api_key) < 4:
        return "****"
    return "*" * (len(api_key) - 4) + api_key[-4:]
