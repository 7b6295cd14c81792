# =============================================================================
#  Discord Architect
#  Copyright (C) 2025 Discord Architect contributors
#
#  This source code is released under the GNU Affero General Public License
#  version 3.0. A copy of the license is available at:
#  https://www.gnu.org/licenses/agpl-3.0.en.html
# =============================================================================

"""
Read-only snapshots of the template category's channels.

Every supported channel kind has its own frozen dataclass, and every table
keyed by `ChannelKind` must cover all members; unsupported Discord channel
types (stage, directory, ...) never become specs.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple, Union

import discord


class ChannelKind(Enum):
    TEXT = "text"
    ANNOUNCEMENT = "announcement"
    VOICE = "voice"
    FORUM = "forum"


# Grouping order before the position sort.
KIND_ORDER: Tuple[ChannelKind, ...] = (
    ChannelKind.TEXT,
    ChannelKind.ANNOUNCEMENT,
    ChannelKind.VOICE,
    ChannelKind.FORUM,
)

_DISCORD_TYPES: Dict[discord.ChannelType, ChannelKind] = {
    discord.ChannelType.text: ChannelKind.TEXT,
    discord.ChannelType.news: ChannelKind.ANNOUNCEMENT,
    discord.ChannelType.voice: ChannelKind.VOICE,
    discord.ChannelType.forum: ChannelKind.FORUM,
}


def kind_of(channel: Any) -> Optional[ChannelKind]:
    return _DISCORD_TYPES.get(getattr(channel, "type", None))


@dataclass(frozen=True)
class ForumTagSpec:
    name: str
    moderated: bool = False
    emoji_id: Optional[int] = None
    emoji_name: Optional[str] = None

    @classmethod
    def from_tag(cls, tag: Any) -> "ForumTagSpec":
        emoji = getattr(tag, "emoji", None)
        emoji_id = getattr(emoji, "id", None) if emoji is not None else None
        emoji_name = getattr(emoji, "name", None) if emoji is not None else None
        return cls(
            name=tag.name,
            moderated=bool(getattr(tag, "moderated", False)),
            emoji_id=int(emoji_id) if emoji_id else None,
            emoji_name=emoji_name or None,
        )


@dataclass(frozen=True)
class ChannelSpec:
    source_id: int
    name: str
    position: int

    kind: ClassVar[ChannelKind]


@dataclass(frozen=True)
class TextChannelSpec(ChannelSpec):
    topic: Optional[str] = None
    slowmode_delay: int = 0
    nsfw: bool = False

    kind: ClassVar[ChannelKind] = ChannelKind.TEXT


@dataclass(frozen=True)
class AnnouncementChannelSpec(ChannelSpec):
    topic: Optional[str] = None

    kind: ClassVar[ChannelKind] = ChannelKind.ANNOUNCEMENT


@dataclass(frozen=True)
class VoiceChannelSpec(ChannelSpec):
    bitrate: int = 64000
    user_limit: int = 0

    kind: ClassVar[ChannelKind] = ChannelKind.VOICE


@dataclass(frozen=True)
class ForumChannelSpec(ChannelSpec):
    topic: Optional[str] = None
    default_sort_order: Optional[Any] = None
    tags: Tuple[ForumTagSpec, ...] = field(default_factory=tuple)

    kind: ClassVar[ChannelKind] = ChannelKind.FORUM


AnyChannelSpec = Union[
    TextChannelSpec, AnnouncementChannelSpec, VoiceChannelSpec, ForumChannelSpec
]


def _text(ch) -> TextChannelSpec:
    return TextChannelSpec(
        source_id=int(ch.id),
        name=ch.name,
        position=int(ch.position),
        topic=getattr(ch, "topic", None),
        slowmode_delay=int(getattr(ch, "slowmode_delay", 0) or 0),
        nsfw=bool(getattr(ch, "nsfw", False)),
    )


def _announcement(ch) -> AnnouncementChannelSpec:
    return AnnouncementChannelSpec(
        source_id=int(ch.id),
        name=ch.name,
        position=int(ch.position),
        topic=getattr(ch, "topic", None),
    )


def _voice(ch) -> VoiceChannelSpec:
    return VoiceChannelSpec(
        source_id=int(ch.id),
        name=ch.name,
        position=int(ch.position),
        bitrate=int(getattr(ch, "bitrate", 64000) or 64000),
        user_limit=int(getattr(ch, "user_limit", 0) or 0),
    )


def _forum(ch) -> ForumChannelSpec:
    return ForumChannelSpec(
        source_id=int(ch.id),
        name=ch.name,
        position=int(ch.position),
        topic=getattr(ch, "topic", None),
        default_sort_order=getattr(ch, "default_sort_order", None),
        tags=tuple(
            ForumTagSpec.from_tag(t) for t in (getattr(ch, "available_tags", None) or [])
        ),
    )


SNAPSHOTS = {
    ChannelKind.TEXT: _text,
    ChannelKind.ANNOUNCEMENT: _announcement,
    ChannelKind.VOICE: _voice,
    ChannelKind.FORUM: _forum,
}


def snapshot_channel(channel: Any) -> Optional[AnyChannelSpec]:
    kind = kind_of(channel)
    if kind is None:
        return None
    return SNAPSHOTS[kind](channel)


def order_channels(specs: Sequence[ChannelSpec]) -> List[ChannelSpec]:
    """Ascending by position; equal positions keep their incoming order."""
    return sorted(specs, key=lambda s: s.position)


def collect_channel_specs(
    category: Any,
) -> Tuple[List[AnyChannelSpec], List[Any]]:
    """
    Snapshot every channel under `category`, grouped text → announcement →
    voice → forum, then stable-sorted by position.
    Returns (ordered_specs, unsupported_channels).
    """
    grouped: Dict[ChannelKind, List[AnyChannelSpec]] = {k: [] for k in KIND_ORDER}
    skipped: List[Any] = []

    for ch in getattr(category, "channels", []) or []:
        spec = snapshot_channel(ch)
        if spec is None:
            skipped.append(ch)
            continue
        grouped[spec.kind].append(spec)

    concatenated: List[AnyChannelSpec] = []
    for kind in KIND_ORDER:
        concatenated.extend(grouped[kind])
    return order_channels(concatenated), skipped
