"""
API routers package.
Each router handles a specific domain of endpoints.
"""

from journey_notes.routers import folders, notes

__all__ = [
    "folders",
    "notes",
]
