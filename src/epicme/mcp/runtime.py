"""EpicMeRuntime — the object graph behind one server process.

Owns the journal bus, the media watcher, the capability gate, the
subscription registry and the outbox, and wires them together:

    journal mutation ─┐
                      ├─► gate → resource lists → subscriptions → plugins
    media change ─────┘

Handlers run in that order on every tick. Everything reaches MCP sessions
through :attr:`EpicMeRuntime.outbox`.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from epicme.domain.changes import ChangeDescriptor
from epicme.domain.identities import URI_SCHEME
from epicme.infrastructure.database import init_database
from epicme.infrastructure.journal import Journal
from epicme.infrastructure.media import MediaDirectory, MediaWatcher
from epicme.infrastructure.renderer import FfmpegRenderer, Renderer
from epicme.plugins.manager import PluginManager
from epicme.reactive.bus import ChangeBus, Subscription
from epicme.reactive.gate import CapabilityGate, DomainCounts
from epicme.reactive.outbox import NotificationOutbox
from epicme.reactive.subscriptions import IdentitySubscriptionRegistry, ResourceListNotifier
from epicme.services.entries import EntryService
from epicme.services.tags import TagService
from epicme.services.video import RenderPipeline, VideoService

if TYPE_CHECKING:
    from anyio.abc import TaskGroup
    from sqlalchemy.engine import Engine

    from epicme.config.settings import EpicMeSettings

logger = logging.getLogger(__name__)

SUGGEST_TAGS_PROMPT = "suggest_tags"
TAGS_RESOURCE = f"{URI_SCHEME}tags"
TAG_TEMPLATE = f"{URI_SCHEME}tags/{{id}}"
ENTRY_TEMPLATE = f"{URI_SCHEME}entries/{{id}}"
VIDEO_TEMPLATE = f"{URI_SCHEME}videos/{{filename}}"

# Template backing each identity category, for gating reads of instances.
CATEGORY_TEMPLATES: dict[str, str] = {
    "tags": TAG_TEMPLATE,
    "entries": ENTRY_TEMPLATE,
    "videos": VIDEO_TEMPLATE,
}


class EpicMeRuntime:
    """Process-lifetime state shared by every MCP session."""

    def __init__(
        self,
        settings: EpicMeSettings,
        *,
        engine: Engine | None = None,
        renderer: Renderer | None = None,
        load_plugins: bool = True,
    ) -> None:
        self.settings = settings
        self.outbox = NotificationOutbox()
        self.bus: ChangeBus[ChangeDescriptor] = ChangeBus("journal")
        self.journal = Journal(engine or init_database(settings.db_path), self.bus)
        self.media = MediaDirectory(settings.videos_dir)
        self.watcher = MediaWatcher(self.media, poll_interval=settings.watcher.poll_interval)

        self.plugins = PluginManager()
        if load_plugins:
            self.plugins.discover_and_load()

        self.gate = CapabilityGate(self.counts, self.outbox)
        self.registry = IdentitySubscriptionRegistry(self.outbox)
        self.resource_lists = ResourceListNotifier(self.outbox)

        self.pipeline = RenderPipeline(
            renderer or FfmpegRenderer(settings.renderer, settings.font_path),
            self.watcher,
            self.plugins,
        )
        self.entries = EntryService(self.journal)
        self.tags = TagService(self.journal)
        self.videos = VideoService(
            self.journal,
            self.pipeline,
            duration=settings.renderer.duration_seconds,
        )

        self._subscriptions: list[tuple[Any, Subscription]] = []
        self._task_groups: list[TaskGroup] = []
        self._register_capabilities()
        self._wire()
        self.gate.initialize()

    def counts(self) -> DomainCounts:
        return DomainCounts(
            entries=self.journal.count_entries(),
            tags=self.journal.count_tags(),
            videos=self.media.count(),
        )

    def _register_capabilities(self) -> None:
        self.gate.register(SUGGEST_TAGS_PROMPT, "prompts", lambda c: c.entries > 0)
        self.gate.register(TAGS_RESOURCE, "resources", lambda c: c.tags > 0)
        self.gate.register(TAG_TEMPLATE, "resources", lambda c: c.tags > 0)
        self.gate.register(ENTRY_TEMPLATE, "resources", lambda c: c.entries > 0)
        self.gate.register(VIDEO_TEMPLATE, "resources", lambda c: c.videos > 0)

    def _wire(self) -> None:
        handlers = (
            ("gate", self.gate.on_change),
            ("resource-lists", self.resource_lists.on_change),
            ("subscriptions", self.registry.on_change),
            ("plugins", self.plugins.on_change),
        )
        for source in (self.bus, self.watcher):
            for name, handler in handlers:
                self._subscriptions.append((source, source.subscribe(handler, name=name)))

    def close(self) -> None:
        """Unsubscribe every handler and stop accepting notifications."""
        for source, token in self._subscriptions:
            source.unsubscribe(token)
        self._subscriptions.clear()
        self.outbox.close()

    # ------------------------------------------------------------------
    # Background work
    # ------------------------------------------------------------------

    def attach_task_group(self, task_group: TaskGroup) -> None:
        """Make a session lifespan's task group available for background work.

        The first live task group also hosts the outbox consumer and the
        media poll loop; later ones only take spawned tasks.
        """
        self._task_groups.append(task_group)
        if len(self._task_groups) == 1:
            self._start_services(task_group)

    def detach_task_group(self, task_group: TaskGroup) -> None:
        """Forget *task_group*; hand the services to the next live one."""
        if task_group not in self._task_groups:
            return
        hosted = self._task_groups[0] is task_group
        self._task_groups.remove(task_group)
        if hosted and self._task_groups:
            self._start_services(self._task_groups[0])

    @property
    def lifespan_count(self) -> int:
        return len(self._task_groups)

    def _start_services(self, task_group: TaskGroup) -> None:
        logger.debug("Starting outbox and media watcher")
        task_group.start_soon(self.outbox.run)
        task_group.start_soon(self.watcher.run)

    def spawn(self, func: Callable[..., Awaitable[Any]], *args: Any, name: str | None = None) -> bool:
        """Run *func* in the newest live task group. Returns False outside a lifespan."""
        if not self._task_groups:
            logger.debug("No task group bound, not spawning %s", name or func)
            return False
        self._task_groups[-1].start_soon(_guarded, func, args, name or getattr(func, "__name__", "task"))
        return True


async def _guarded(func: Callable[..., Awaitable[Any]], args: tuple[Any, ...], name: str) -> None:
    try:
        await func(*args)
    except Exception:
        logger.warning("Background task %s failed", name, exc_info=True)
