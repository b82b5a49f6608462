"""Plugin discovery, loading, and hook dispatch.

Discovery: entry points in the ``epicme.plugins`` group, loaded through
pluggy's setuptools entry-point support.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any

import pluggy

from epicme.plugins.hookspecs import EpicMeHookSpec

if TYPE_CHECKING:
    from epicme.domain.changes import ChangeDescriptor

PROJECT_NAME = "epicme"
ENTRY_POINT_GROUP = "epicme.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """Manages plugin discovery, loading, and hook dispatch.

    INVARIANT: Plugin failures are warnings, never errors.
    """

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(EpicMeHookSpec)
        self._loaded: bool = False

    def discover_and_load(self) -> list[str]:
        """Load entry-point plugins. Returns the names of all registered plugins."""
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._instantiate_plugin_classes()
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly."""
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        """Whether discover_and_load() has been called."""
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    def dispatch(self, hook_name: str, **payload: Any) -> None:
        """Call *hook_name* on every plugin; failures become warnings."""
        try:
            getattr(self._pm.hook, hook_name)(**payload)
        except Exception:
            logger.warning("Plugin hook %s failed", hook_name, exc_info=True)

    async def on_change(self, descriptor: ChangeDescriptor) -> None:
        """Bus handler forwarding every change to ``post_change``."""
        self.dispatch(
            "post_change",
            entries=list(descriptor.entries),
            tags=list(descriptor.tags),
            videos=list(descriptor.videos),
            categories=sorted(descriptor.categories),
        )

    def _instantiate_plugin_classes(self) -> None:
        """Entry points may register a plugin class; hooks need an instance."""
        classes = [p for p in self._pm.get_plugins() if inspect.isclass(p) and _declares_hooks(p)]
        for plugin_cls in classes:
            name = self._pm.get_name(plugin_cls) or plugin_cls.__name__
            self._pm.unregister(plugin_cls)
            try:
                self._pm.register(plugin_cls(), name=name)
            except Exception:
                logger.warning("Could not instantiate plugin %s", name, exc_info=True)


def _declares_hooks(plugin_cls: type) -> bool:
    marker = f"{PROJECT_NAME}_impl"
    return any(
        getattr(getattr(plugin_cls, attr, None), marker, None)
        for attr in dir(plugin_cls)
        if not attr.startswith("_")
    )
