"""
presence_platform package initializer.
"""

from . import live
from . import register
from . import storage

__all__ = ["live", "register", "storage"]
