"""
Shared helpers.
"""

from .random import SeededRandom

__all__ = ['SeededRandom']
