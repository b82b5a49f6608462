"""Extension layer — plugin system via pluggy.

INVARIANT: Plugin failures are warnings, never errors.
"""

from epicme.plugins.hookspecs import hookimpl
from epicme.plugins.manager import PluginManager

__all__ = ["PluginManager", "hookimpl"]
