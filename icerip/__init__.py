"""
icerip: records tracks from live audio streams based on metadata filters.
"""

__version__ = "1.0.0"
