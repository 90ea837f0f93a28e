# instreg/instances/__init__.py
"""
Built-in instance types.

Import this module to register all built-in instance types.
"""

from . import standard
