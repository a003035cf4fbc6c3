"""
GEP data service: electrification scenario filtering and aggregation.
"""

__version__ = "1.0.0"
