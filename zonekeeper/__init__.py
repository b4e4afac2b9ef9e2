"""
Zonekeeper keeps the records of a DNS provider account in sync with a desired state.
"""

__version__ = "0.1.0"
