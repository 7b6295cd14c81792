# =============================================================================
#  Discord Architect
#  Copyright (C) 2025 Discord Architect contributors
#
#  This source code is released under the GNU Affero General Public License
#  version 3.0. A copy of the license is available at:
#  https://www.gnu.org/licenses/agpl-3.0.en.html
# =============================================================================

from __future__ import annotations
import logging
import time
from typing import Awaitable, Callable, Dict, Optional

import aiohttp
import discord
from discord import ChannelType
from discord.channel import CategoryChannel
from discord.errors import HTTPException

from common.config import DiscordOptions
from architect.channels import (
    AnnouncementChannelSpec,
    ChannelKind,
    ChannelSpec,
    ForumChannelSpec,
    TextChannelSpec,
    VoiceChannelSpec,
    collect_channel_specs,
)
from architect.cleanup import CleanupService
from architect.diagnostics import print_guild_perms_and_role_stack
from architect.forum_tags import ForumTagClient
from architect.permissions import PermissionPlanner
from architect.resources import CreatedResources, ResourceTracker

logger = logging.getLogger("architect.cloner")

# Default role grants for a per-category role.
ROLE_BASE_PERMISSIONS = dict(
    view_channel=True,
    create_instant_invite=True,
    send_messages=True,
    send_messages_in_threads=True,
    attach_files=True,
    add_reactions=True,
    read_message_history=True,
)

Creator = Callable[[discord.Guild, CategoryChannel, ChannelSpec], Awaitable[object]]


def find_category(guild: discord.Guild, name: str) -> Optional[CategoryChannel]:
    """Exact, case-sensitive match on the category name."""
    for cat in guild.categories:
        if cat.name == name:
            return cat
    return None


class CategoryCloner:
    """
    Recreates a template category (channels, overwrites, forum tags) under a new
    name in the same guild. Every Discord call is awaited in order.
    """

    def __init__(
        self,
        tags: ForumTagClient,
        planner: Optional[PermissionPlanner] = None,
        cleanup: Optional[CleanupService] = None,
    ):
        self.tags = tags
        self.planner = planner or PermissionPlanner()
        self.cleanup = cleanup or CleanupService()
        self.creators: Dict[ChannelKind, Creator] = {
            ChannelKind.TEXT: self._create_text,
            ChannelKind.ANNOUNCEMENT: self._create_announcement,
            ChannelKind.VOICE: self._create_voice,
            ChannelKind.FORUM: self._create_forum,
        }

    async def clone(
        self,
        guild: discord.Guild,
        source_category_name: str,
        new_category_name: str,
        options: DiscordOptions,
    ) -> Optional[CreatedResources]:
        print_guild_perms_and_role_stack(guild)

        source = find_category(guild, source_category_name)
        if source is None:
            logger.error("[❌] Source category '%s' not found.", source_category_name)
            logger.info("[📂] Available categories:")
            for cat in sorted(guild.categories, key=lambda c: c.position):
                logger.info(" - %s", cat.name)
            return None

        tracker = ResourceTracker()
        started = time.perf_counter()
        try:
            await self._clone_into(guild, source, new_category_name, options, tracker)
        except Exception:
            logger.exception("[⛔] Clone of '%s' failed", source_category_name)
            if options.rollback_on_failure:
                await self._rollback(guild, tracker)
            raise

        logger.info(
            "[✅] Category '%s' cloned from '%s' in source order.",
            new_category_name,
            source_category_name,
            extra={"took_ms": int((time.perf_counter() - started) * 1000)},
        )
        return tracker.freeze()

    async def _clone_into(
        self,
        guild: discord.Guild,
        source: CategoryChannel,
        new_name: str,
        options: DiscordOptions,
        tracker: ResourceTracker,
    ) -> None:
        category = await guild.create_category(new_name)
        tracker.track_category(category.id)
        logger.info(
            "[📁] Created category: %s (id: %s)",
            category.name,
            category.id,
            extra={"category_id": category.id},
        )

        me = guild.me
        await self.planner.ensure_actor_access(category, me)
        await self.planner.apply_everyone_toggle(
            category, guild, options.everyone_access_to_new_category
        )

        if options.create_role_per_category:
            await self._create_category_role(guild, category, new_name, tracker)

        specs, skipped = collect_channel_specs(source)
        for ch in skipped:
            logger.info(
                "[ℹ️] Skipped unsupported channel type: %s (%s)",
                ch.name,
                getattr(ch, "type", "?"),
            )

        for spec in specs:
            created = await self.creators[spec.kind](guild, category, spec)
            tracker.track_channel(created.id)

            if options.sync_channels_to_category:
                await created.edit(sync_permissions=True)
                logger.debug("[🔗] Synced '%s' to category", created.name)

            if isinstance(spec, ForumChannelSpec):
                await self._apply_forum_tags(created, spec)

    async def _create_category_role(
        self,
        guild: discord.Guild,
        category: CategoryChannel,
        name: str,
        tracker: ResourceTracker,
    ) -> None:
        if not guild.me.guild_permissions.manage_roles:
            logger.warning(
                "[⚠️] Skipping role creation: bot lacks Manage Roles (268435456)."
            )
            return
        try:
            role = await guild.create_role(
                name=name,
                permissions=discord.Permissions(**ROLE_BASE_PERMISSIONS),
                hoist=False,
                mentionable=True,
            )
            tracker.track_role(role.id)
            logger.info(
                "[🧩] Created role '%s' (id: %s)",
                role.name,
                role.id,
                extra={"role_id": role.id},
            )
            await self.planner.grant_access(category, role)
            logger.info("[✅] Granted '%s' access to the new category.", role.name)
        except HTTPException as e:
            logger.error(
                "[❌] Role creation failed: HTTP %s, DiscordCode %s: %s",
                e.status,
                e.code,
                e.text,
            )
            logger.error(
                "   → Fix: give the bot a non-managed role with Manage Roles placed ABOVE other roles."
            )

    async def _create_text(self, guild, category, spec: TextChannelSpec):
        ch = await guild.create_text_channel(
            spec.name,
            category=category,
            topic=spec.topic,
            slowmode_delay=spec.slowmode_delay,
            nsfw=spec.nsfw,
        )
        logger.info("[💬] Cloned text channel: %s", ch.name, extra={"channel_id": ch.id})
        return ch

    async def _create_announcement(self, guild, category, spec: AnnouncementChannelSpec):
        ch = await guild.create_text_channel(spec.name, category=category, topic=spec.topic)
        if "NEWS" in guild.features:
            await ch.edit(type=ChannelType.news)
            logger.info(
                "[📰] Cloned announcement channel: %s", ch.name, extra={"channel_id": ch.id}
            )
        else:
            logger.warning(
                "[⚠️] Guild %s doesn’t support NEWS; '%s' left as text", guild.id, ch.name
            )
        return ch

    async def _create_voice(self, guild, category, spec: VoiceChannelSpec):
        ch = await guild.create_voice_channel(
            spec.name,
            category=category,
            bitrate=spec.bitrate,
            user_limit=spec.user_limit,
        )
        logger.info("[🔊] Cloned voice channel: %s", ch.name, extra={"channel_id": ch.id})
        return ch

    async def _create_forum(self, guild, category, spec: ForumChannelSpec):
        kwargs = {"category": category, "topic": spec.topic}
        if spec.default_sort_order is not None:
            kwargs["default_sort_order"] = spec.default_sort_order
        ch = await guild.create_forum_channel(spec.name, **kwargs)
        logger.info(
            "[🗂️] Created forum channel: %s (id: %s)",
            ch.name,
            ch.id,
            extra={"channel_id": ch.id},
        )
        return ch

    async def _apply_forum_tags(self, forum, spec: ForumChannelSpec) -> None:
        if not spec.tags:
            logger.info("   → Forum %s has no tags; skipped tags apply.", forum.name)
            return
        try:
            ok = await self.tags.patch_available_tags(forum.id, spec.tags)
        except aiohttp.ClientError as e:
            logger.warning("   → Failed to apply tags for forum %s: %s", forum.name, e)
            return
        if ok:
            logger.info("   → Tags applied for forum %s", forum.name)
        else:
            logger.warning("   → Failed to apply tags for forum %s", forum.name)

    async def _rollback(self, guild: discord.Guild, tracker: ResourceTracker) -> None:
        partial = tracker.freeze()
        if partial.is_empty:
            return
        logger.warning("[↩️] Rolling back partially created resources...")
        try:
            report = await self.cleanup.cleanup(guild, partial)
        except Exception:
            logger.exception("[⛔] Rollback did not complete")
            return
        if report.failed:
            logger.error("[❌] Rollback left behind: %s", ", ".join(report.failed))
