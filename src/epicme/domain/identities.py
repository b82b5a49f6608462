"""Resource identity namespace.

Identities have the shape ``category/identifier`` (``entries/7``,
``tags/3``, ``videos/wrapped-2025.mp4``). The same string, prefixed with
:data:`URI_SCHEME` and with the identifier percent-encoded, is the resource
URI, the subscription key, and the payload of point notifications;
:func:`identity_key` maps any spelling of a URI onto that form.
"""

from __future__ import annotations

from typing import NamedTuple
from urllib.parse import quote, unquote

URI_SCHEME = "epicme://"

ENTRIES = "entries"
TAGS = "tags"
VIDEOS = "videos"

CATEGORIES: tuple[str, ...] = (ENTRIES, TAGS, VIDEOS)

_LABELS: dict[str, str] = {
    ENTRIES: "Entry",
    TAGS: "Tag",
    VIDEOS: "Video",
}


class Identity(NamedTuple):
    """A parsed ``category/identifier`` pair."""

    category: str
    identifier: str

    def __str__(self) -> str:
        return f"{self.category}/{self.identifier}"

    @property
    def uri(self) -> str:
        """Canonical URI; the identifier is percent-encoded."""
        return f"{URI_SCHEME}{self.category}/{quote(self.identifier, safe='')}"

    @property
    def label(self) -> str:
        """Human-readable label used as the notification title."""
        return f"{_LABELS.get(self.category, self.category.title())} {self.identifier}"


def entry_uri(entry_id: int) -> str:
    return Identity(ENTRIES, str(entry_id)).uri


def tag_uri(tag_id: int) -> str:
    return Identity(TAGS, str(tag_id)).uri


def video_uri(filename: str) -> str:
    return Identity(VIDEOS, filename).uri


def parse_identity(value: str) -> Identity | None:
    """Parse a URI or bare identity. Returns None when it is not well formed.

    Examples:
        >>> parse_identity("epicme://entries/7")
        Identity(category='entries', identifier='7')
        >>> parse_identity("tags/3")
        Identity(category='tags', identifier='3')
        >>> parse_identity("epicme://tags") is None
        True
    """
    raw = value.removeprefix(URI_SCHEME)
    category, sep, identifier = raw.partition("/")
    if not sep or not category or not identifier:
        return None
    return Identity(category, unquote(identifier))


def identity_key(uri: str) -> str:
    """Canonical form of a resource URI, used wherever URIs are compared.

    Encoded and unencoded spellings of the same identity share one key;
    strings that are not identities are returned unchanged.

    Examples:
        >>> identity_key("epicme://videos/my wrap.mp4")
        'epicme://videos/my%20wrap.mp4'
        >>> identity_key("epicme://videos/my%20wrap.mp4")
        'epicme://videos/my%20wrap.mp4'
        >>> identity_key("epicme://tags")
        'epicme://tags'
    """
    identity = parse_identity(uri)
    return identity.uri if identity is not None else uri
