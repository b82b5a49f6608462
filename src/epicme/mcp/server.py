"""FastMCP server setup.

Transport: stdio default, SSE and streamable HTTP optional.

:class:`EpicMeMCP` extends FastMCP with what the reactive layer needs:

- list and read/get handlers consult the capability gate, so disabled
  prompts and resources are hidden and cannot be fetched;
- every session that makes a request is attached to the outbox;
- ``resources/subscribe`` and ``resources/unsubscribe`` feed the identity
  registry;
- the advertised capabilities include ``prompts.listChanged``,
  ``resources.listChanged`` and ``resources.subscribe``.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import anyio
from mcp import types
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ResourceError
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.lowlevel.server import NotificationOptions
from pydantic import AnyUrl

from epicme.domain.identities import TAGS, VIDEOS, parse_identity
from epicme.mcp.runtime import CATEGORY_TEMPLATES, EpicMeRuntime

if TYPE_CHECKING:
    from mcp.server.models import InitializationOptions

    from epicme.config.settings import EpicMeSettings

__all__ = ["EpicMeMCP", "create_server"]

logger = logging.getLogger(__name__)

INSTRUCTIONS = """
EpicMe is a journaling app that allows users to write about and review their experiences, thoughts, and reflections.

Tools and resources become available as the journal fills up: the suggest_tags prompt appears once there is an entry, tag resources once there is a tag, and video resources once a video has been rendered.
""".strip()


class EpicMeMCP(FastMCP):
    """FastMCP whose advertised surface follows the runtime's capability gate."""

    def __init__(self, runtime: EpicMeRuntime, **kwargs: Any) -> None:
        self.runtime = runtime
        super().__init__("epicme", instructions=INSTRUCTIONS, lifespan=_lifespan, **kwargs)
        self._install_subscription_handlers()
        self._install_capabilities()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def _attach_current_session(self) -> None:
        try:
            session = self._mcp_server.request_context.session
        except LookupError:
            return
        self.runtime.outbox.attach(session)

    def _install_subscription_handlers(self) -> None:
        registry = self.runtime.registry

        @self._mcp_server.subscribe_resource()  # type: ignore[untyped-decorator]
        async def _subscribe(uri: AnyUrl) -> None:
            self._attach_current_session()
            registry.subscribe_to(str(uri))

        @self._mcp_server.unsubscribe_resource()  # type: ignore[untyped-decorator]
        async def _unsubscribe(uri: AnyUrl) -> None:
            registry.unsubscribe_from(str(uri))

    def _install_capabilities(self) -> None:
        base = self._mcp_server.create_initialization_options

        def create_initialization_options(
            notification_options: NotificationOptions | None = None,
            experimental_capabilities: dict[str, dict[str, Any]] | None = None,
        ) -> InitializationOptions:
            options = base(
                notification_options
                or NotificationOptions(prompts_changed=True, resources_changed=True),
                experimental_capabilities,
            )
            if options.capabilities.resources is not None:
                options.capabilities.resources.subscribe = True
            return options

        self._mcp_server.create_initialization_options = create_initialization_options  # type: ignore[method-assign]

    # ------------------------------------------------------------------
    # Gated handlers
    # ------------------------------------------------------------------

    async def call_tool(self, *args: Any, **kwargs: Any) -> Any:
        self._attach_current_session()
        return await super().call_tool(*args, **kwargs)

    async def list_tools(self) -> list[types.Tool]:
        self._attach_current_session()
        return await super().list_tools()

    async def list_prompts(self) -> list[types.Prompt]:
        self._attach_current_session()
        gate = self.runtime.gate
        return [p for p in await super().list_prompts() if gate.is_enabled(p.name)]

    async def get_prompt(self, name: str, arguments: dict[str, Any] | None = None) -> types.GetPromptResult:
        self._attach_current_session()
        if not self.runtime.gate.is_enabled(name):
            msg = f"Prompt {name!r} is not available"
            raise ValueError(msg)
        return await super().get_prompt(name, arguments)

    async def list_resources(self) -> list[types.Resource]:
        self._attach_current_session()
        from epicme.mcp.resources import tag_instances, video_instances

        gate = self.runtime.gate
        listed = [r for r in await super().list_resources() if gate.is_enabled(str(r.uri))]
        if gate.is_enabled(CATEGORY_TEMPLATES[TAGS]):
            listed.extend(tag_instances(self.runtime))
        if gate.is_enabled(CATEGORY_TEMPLATES[VIDEOS]):
            listed.extend(video_instances(self.runtime))
        return listed

    async def list_resource_templates(self) -> list[types.ResourceTemplate]:
        self._attach_current_session()
        gate = self.runtime.gate
        return [t for t in await super().list_resource_templates() if gate.is_enabled(t.uriTemplate)]

    async def read_resource(self, uri: AnyUrl | str) -> Iterable[ReadResourceContents]:
        self._attach_current_session()
        capability = capability_for_uri(str(uri))
        if capability is not None and not self.runtime.gate.is_enabled(capability):
            msg = f"Resource {uri} is not available"
            raise ResourceError(msg)
        return await super().read_resource(uri)


def capability_for_uri(uri: str) -> str | None:
    """The gated capability that serves *uri*, if any.

    Examples:
        >>> capability_for_uri("epicme://tags")
        'epicme://tags'
        >>> capability_for_uri("epicme://entries/7")
        'epicme://entries/{id}'
        >>> capability_for_uri("https://example.com") is None
        True
    """
    identity = parse_identity(uri)
    if identity is not None:
        return CATEGORY_TEMPLATES.get(identity.category)
    if uri == f"epicme://{TAGS}":
        return uri
    return None


@asynccontextmanager
async def _lifespan(server: FastMCP) -> AsyncIterator[EpicMeRuntime]:
    """Give the runtime a task group for as long as this session lives.

    HTTP transports run one lifespan per session against the shared
    runtime; the outbox consumer and the media poll loop run in exactly one
    of them at a time.
    """
    runtime: EpicMeRuntime = server.runtime  # type: ignore[attr-defined]
    async with anyio.create_task_group() as tg:
        runtime.attach_task_group(tg)
        try:
            yield runtime
        finally:
            runtime.detach_task_group(tg)
            tg.cancel_scope.cancel()


def create_server(
    settings: EpicMeSettings,
    *,
    runtime: EpicMeRuntime | None = None,
) -> EpicMeMCP:
    """Create and configure the MCP server.

    Builds the runtime from *settings* (unless one is given) and registers
    all tools, resources, and prompts. ``settings.mcp`` host and port
    configure HTTP transports; stdio ignores them.
    """
    from epicme.mcp.prompts import register_prompts
    from epicme.mcp.resources import register_resources
    from epicme.mcp.tools import register_tools

    runtime = runtime or EpicMeRuntime(settings)
    server = EpicMeMCP(runtime, host=settings.mcp.host, port=settings.mcp.port)

    register_tools(server, runtime)
    register_resources(server, runtime)
    register_prompts(server, runtime)

    logger.debug("Capabilities at startup: %s", runtime.gate.snapshot())
    return server
