"""
splitstats: access-scoped metrics and earnings accounting for a split-fee
recruiting marketplace.
"""

__version__ = "0.1.0"
