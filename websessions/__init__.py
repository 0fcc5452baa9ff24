"""
websessions: server-side sessions with cookie-sealed identifiers.
"""

__version__ = "1.0.0"
