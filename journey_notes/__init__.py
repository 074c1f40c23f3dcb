"""
Journey Notes: hierarchical folders and notes backed by SQLite.
"""

__version__ = "1.0.0"
