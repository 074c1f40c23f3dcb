"""
Input validation utilities.
"""

from typing import Tuple

# Folder names longer than this are rejected outright
MAX_FOLDER_NAME_LENGTH = 200


def validate_folder_name(name: str) -> Tuple[bool, str]:
    """
    Validate a folder name.

    Names are compared after trimming; uniqueness among siblings is
    not required.

    Args:
        name: Folder name to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if name is None or not name.strip():
        return False, "Folder name cannot be empty."

    if len(name.strip()) > MAX_FOLDER_NAME_LENGTH:
        return False, f"Folder name must be {MAX_FOLDER_NAME_LENGTH} characters or less"

    return True, ""
