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
from typing import Union

import discord
from discord.channel import CategoryChannel

logger = logging.getLogger("architect.permissions")

Principal = Union[discord.Role, discord.Member]


def actor_overwrite() -> discord.PermissionOverwrite:
    return discord.PermissionOverwrite(
        view_channel=True, manage_channels=True, send_messages=True
    )


def role_overwrite() -> discord.PermissionOverwrite:
    return discord.PermissionOverwrite(view_channel=True, send_messages=True)


def hidden_overwrite() -> discord.PermissionOverwrite:
    return discord.PermissionOverwrite(view_channel=False)


class PermissionPlanner:
    """
    Category-level overwrite writes for a freshly created category.

    Each method issues at most one `set_permissions` call and replaces whatever
    overwrite the principal had; Discord errors propagate to the caller.
    """

    async def grant_access(self, category: CategoryChannel, principal: Principal) -> None:
        await category.set_permissions(principal, overwrite=role_overwrite())
        logger.debug(
            "[🔓] Granted view/send on '%s' to %s", category.name, principal.name
        )

    async def ensure_actor_access(
        self, category: CategoryChannel, actor: discord.Member
    ) -> None:
        """The bot keeps view/manage/send even after @everyone is hidden."""
        await category.set_permissions(actor, overwrite=actor_overwrite())
        logger.debug(
            "[🔑] Bot %s can view/manage/send in '%s'", actor.name, category.name
        )

    async def apply_everyone_toggle(
        self, category: CategoryChannel, guild: discord.Guild, enabled: bool
    ) -> None:
        if enabled:
            logger.info("[👥] @everyone keeps access to '%s'", category.name)
            return
        await category.set_permissions(guild.default_role, overwrite=hidden_overwrite())
        logger.debug("[🙈] Hid '%s' from @everyone", category.name)
