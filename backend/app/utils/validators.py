"""
Input validation utilities.

This module provides validation functions for user input to ensure
data integrity before any catalog or scoring work is done. Every
validator raises InputError (a ValueError) with a message suitable for
returning to the client.
"""

import re
import logging
from typing import List, Optional

from app.exceptions import InputError
from app.utils.constants import BUDGET_RANGES, VALID_CONDITIONS

# Configure logging
logger = logging.getLogger(__name__)

_BASE64_BODY = re.compile(r'^[A-Za-z0-9+/=]+$')


def validate_conditions(conditions: List[str], max_conditions: int = 5) -> bool:
    """
    Validate the user-selected skin conditions.

    Ensures the condition list:
    - Is a list
    - Is not empty
    - Does not exceed the maximum number of conditions
    - Contains only supported condition identifiers

    Args:
        conditions: Condition identifiers from the request
        max_conditions: Maximum number of conditions allowed (default: 5)

    Returns:
        bool: True if valid

    Raises:
        InputError: If validation fails with specific error message
    """
    if not isinstance(conditions, list):
        raise InputError("Conditions must be an array")

    if len(conditions) == 0:
        raise InputError("Please select at least one skin condition")

    if len(conditions) > max_conditions:
        raise InputError(f"Maximum {max_conditions} conditions allowed")

    invalid = [c for c in conditions if c not in VALID_CONDITIONS]
    if invalid:
        raise InputError(
            f"Invalid condition(s): {', '.join(map(str, invalid))}. "
            f"Valid options: {', '.join(VALID_CONDITIONS)}"
        )

    logger.debug(f"Conditions validated: {conditions}")
    return True


def validate_budget(budget: Optional[str]) -> bool:
    """
    Validate the optional budget tier.

    Args:
        budget: Budget tier name (case-insensitive) or None

    Returns:
        bool: True if valid

    Raises:
        InputError: If the budget is not a known tier
    """
    if not budget:
        return True

    if not isinstance(budget, str):
        raise InputError("Budget must be a string")

    if budget.lower() not in BUDGET_RANGES:
        raise InputError(
            f"Invalid budget. Valid options: {', '.join(BUDGET_RANGES.keys())}"
        )

    return True


def validate_description(description: Optional[str]) -> bool:
    """
    Validate the optional free-text description.

    Raises:
        InputError: If the description is too short or too long
    """
    if not description:
        return True

    if not isinstance(description, str):
        raise InputError("Description must be a string")

    if len(description) > 500:
        raise InputError("Description must be 500 characters or less")

    if len(description) < 3:
        raise InputError("Description must be at least 3 characters")

    return True


def validate_image(image: Optional[str], max_bytes: int = 10 * 1024 * 1024) -> bool:
    """
    Validate the uploaded face image.

    The image must be a base64 string, optionally wrapped in a data URI.
    Size is estimated from the encoded length (base64 is ~4/3 of binary).

    Args:
        image: Base64 image or data URI
        max_bytes: Maximum decoded image size in bytes (default: 10MB)

    Returns:
        bool: True if valid

    Raises:
        InputError: If the image is missing, too large or not base64
    """
    if not image:
        raise InputError("Image is required. Please upload a face selfie")

    if not isinstance(image, str):
        raise InputError("Image must be a base64 string")

    estimated_size = len(image) * 3 / 4
    if estimated_size > max_bytes:
        raise InputError(
            f"Image is too large. Maximum size: {max_bytes // (1024 * 1024)}MB"
        )

    if 'base64' not in image and not _BASE64_BODY.match(image):
        raise InputError("Invalid image format. Must be base64 encoded")

    logger.debug(f"Image validated ({estimated_size / 1024:.2f}KB)")
    return True
