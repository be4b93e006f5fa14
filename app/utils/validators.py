"""
Custom validators for the relationship network API.

This module contains validation functions for account and guild identifiers
used across the request models.
"""

import re
from typing import Any, List

SNOWFLAKE_PATTERN = re.compile(r"^\d{1,20}$")


def _validate_snowflake(value: Any, label: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{label} must be a string")

    value = value.strip()

    if not value:
        raise ValueError(f"{label} cannot be empty")

    if not SNOWFLAKE_PATTERN.match(value):
        raise ValueError(
            f"{label} must be a numeric snowflake of 1-20 digits (e.g., 123456789012345678)"
        )

    return value


def validate_user_id(user_id: Any) -> str:
    """
    Validate account ID format.

    Account IDs are numeric snowflakes of up to 20 digits.

    Args:
        user_id: The account ID to validate

    Returns:
        str: The validated, trimmed account ID

    Raises:
        ValueError: If the account ID format is invalid
    """
    return _validate_snowflake(user_id, "User ID")


def validate_guild_id(guild_id: Any) -> str:
    """
    Validate guild ID format.

    Args:
        guild_id: The guild ID to validate

    Returns:
        str: The validated, trimmed guild ID

    Raises:
        ValueError: If the guild ID format is invalid
    """
    return _validate_snowflake(guild_id, "Guild ID")


def validate_unique_guild_ids(guild_ids: List[str]) -> List[str]:
    """
    Reject guild lists that name the same guild twice.

    Raises:
        ValueError: If a guild ID is repeated
    """
    seen = set()
    duplicates = []
    for guild_id in guild_ids:
        if guild_id in seen and guild_id not in duplicates:
            duplicates.append(guild_id)
        seen.add(guild_id)

    if duplicates:
        raise ValueError(f"Duplicate guild IDs found: {duplicates}")

    return guild_ids
