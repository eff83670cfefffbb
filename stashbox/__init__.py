"""
Stashbox — key-value caching with filesystem and Redis drivers.
"""

__version__ = "0.1.0"
