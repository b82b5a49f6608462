"""Domain layer — pure values and functions, no I/O.

ChangeDescriptor, identity namespace, journal records, scene construction.
"""

from epicme.domain.changes import ChangeDescriptor
from epicme.domain.identities import Identity, parse_identity
from epicme.domain.records import Entry, EntryTag, Tag, TagRef
from epicme.domain.scene import Overlay, Scene, build_scene

__all__ = [
    "ChangeDescriptor",
    "Entry",
    "EntryTag",
    "Identity",
    "Overlay",
    "Scene",
    "Tag",
    "TagRef",
    "build_scene",
    "parse_identity",
]
