"""
mysqlbootstrap - First-boot initialization entrypoint for MySQL containers
"""

__version__ = "0.3.0"

from .core import MySQLBootstrap
from .errors import BootstrapError

__all__ = ["MySQLBootstrap", "BootstrapError"]
