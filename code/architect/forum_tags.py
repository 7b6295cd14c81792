# =============================================================================
#  Discord Architect
#  Copyright (C) 2025 Discord Architect contributors
#
#  This source code is released under the GNU Affero General Public License
#  version 3.0. A copy of the license is available at:
#  https://www.gnu.org/licenses/agpl-3.0.en.html
# =============================================================================

"""
Forum tag replication.

py-cord's forum edit merges tag objects it already knows about, so the cloned
forum's tag list is replaced wholesale with one raw REST call instead.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Optional

import aiohttp

from common.config import CURRENT_VERSION

logger = logging.getLogger("architect.forum_tags")

DEFAULT_API_BASE = "https://discord.com/api/v10"
USER_AGENT = f"DiscordBot (discord-architect, {CURRENT_VERSION})"


def _emoji_fields(tag: Any) -> tuple[Optional[int], Optional[str]]:
    # ForumTagSpec carries flat fields; py-cord ForumTag carries a PartialEmoji.
    if hasattr(tag, "emoji_id") or hasattr(tag, "emoji_name"):
        return getattr(tag, "emoji_id", None), getattr(tag, "emoji_name", None)
    emoji = getattr(tag, "emoji", None)
    if emoji is None:
        return None, None
    return getattr(emoji, "id", None), getattr(emoji, "name", None)


def build_tags_payload(tags: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    Serialize forum tags for `available_tags`.

    Custom emoji -> {"id": "<id>", "name": "<name>"}, built-in -> {"name": ...},
    no emoji -> key omitted. Null fields are never sent.
    """
    out: List[Dict[str, Any]] = []
    for tag in tags:
        item: Dict[str, Any] = {
            "name": tag.name,
            "moderated": bool(getattr(tag, "moderated", False)),
        }
        emoji_id, emoji_name = _emoji_fields(tag)
        if emoji_id:
            emoji: Dict[str, Any] = {"id": str(emoji_id)}
            if emoji_name:
                emoji["name"] = emoji_name
            item["emoji"] = emoji
        elif emoji_name:
            item["emoji"] = {"name": emoji_name}
        out.append(item)
    return out


class ForumTagClient:
    def __init__(
        self,
        token: str,
        session: Optional[aiohttp.ClientSession] = None,
        api_base: str = DEFAULT_API_BASE,
    ):
        self.token = token
        self.session = session
        self.api_base = api_base.rstrip("/")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bot {self.token}",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }

    async def patch_available_tags(self, channel_id: int, tags: Iterable[Any]) -> bool:
        """
        Replace the forum's tag list in one PATCH. Returns True on 2xx.
        No retries; aiohttp.ClientError propagates to the caller.
        """
        payload = {"available_tags": build_tags_payload(tags)}
        url = f"{self.api_base}/channels/{int(channel_id)}"

        owned = self.session is None
        session = aiohttp.ClientSession() if owned else self.session
        try:
            async with session.patch(url, json=payload, headers=self._headers()) as resp:
                if 200 <= resp.status < 300:
                    logger.info(
                        "[🏷️] Applied %d forum tag(s) to #%s",
                        len(payload["available_tags"]),
                        channel_id,
                    )
                    return True
                try:
                    body = await resp.text()
                except Exception:
                    body = "<no body>"
                logger.warning(
                    "[⚠️] Forum tag patch for #%s failed: HTTP %s %s",
                    channel_id,
                    resp.status,
                    body or "<no body>",
                )
                return False
        finally:
            if owned:
                await session.close()
