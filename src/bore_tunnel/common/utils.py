"""Utility functions for bore tunnel supervision."""

from typing import Any

SENSITIVE_FIELDS = frozenset({"secret", "token", "password", "key"})


def validate_non_empty_string(value: str, field_name: str) -> str:
    """Validate that a string is not empty or only whitespace.

    Returns:
        Stripped string value

    Raises:
        ValueError: If string is empty or only whitespace
    """
    if not value or not value.strip():
        raise ValueError(f"{field_name} cannot be empty")
    return value.strip()


def mask_sensitive_data(
    value: str | None, mask_char: str = "*", show_chars: int = 4
) -> str:
    """Mask sensitive data for logging while preserving some characters for debugging.

    Args:
        value: Sensitive string to mask (e.g., tunnel secret)
        mask_char: Character to use for masking
        show_chars: Number of characters to show at the end

    Returns:
        Masked string safe for logging
    """
    if not value:
        return "<None>"

    if len(value) <= show_chars:
        return mask_char * len(value)

    masked_length = len(value) - show_chars
    return mask_char * masked_length + value[-show_chars:]


def sanitize_log_data(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with sensitive fields masked."""
    sanitized = {}
    for key, value in data.items():
        if any(field in key.lower() for field in SENSITIVE_FIELDS):
            sanitized[key] = mask_sensitive_data(str(value) if value else None)
        else:
            sanitized[key] = value
    return sanitized


def redact_command(args: list[str]) -> list[str]:
    """Mask the value following ``--secret`` in a command line."""
    redacted = list(args)
    for index, arg in enumerate(redacted[:-1]):
        if arg == "--secret":
            redacted[index + 1] = mask_sensitive_data(redacted[index + 1])
    return redacted
