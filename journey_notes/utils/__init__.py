"""
Utility helpers: identifiers, timestamps and input validation.
"""

from journey_notes.utils.ids import generate_id, now_ms
from journey_notes.utils.validators import validate_folder_name

__all__ = ["generate_id", "now_ms", "validate_folder_name"]
