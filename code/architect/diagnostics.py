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

import discord

logger = logging.getLogger("architect.diagnostics")


def print_guild_perms_and_role_stack(guild: discord.Guild) -> None:
    """Log what the bot may do in `guild` and where its roles sit in the stack."""
    me = guild.me
    perms = me.guild_permissions
    logger.info(
        "[🩺] Admin:%s ManageRoles:%s ManageChannels:%s ManageThreads:%s",
        perms.administrator,
        perms.manage_roles,
        perms.manage_channels,
        perms.manage_threads,
    )

    my_role_ids = {r.id for r in me.roles}
    logger.info("[🩺] Role stack (top→bottom):")
    for r in sorted(guild.roles, key=lambda r: r.position, reverse=True):
        logger.info(
            "%s pos=%d name=%s managed=%s perms=%d",
            "*" if r.id in my_role_ids else " ",
            r.position,
            r.name,
            r.managed,
            r.permissions.value,
        )

    # @everyone is never managed; only the bot's assigned roles count.
    assigned = [r for r in me.roles if r != guild.default_role]
    if all(r.managed for r in assigned):
        logger.warning(
            "[⚠️] The bot only has MANAGED roles. Add a normal role with Manage Roles and place it above others."
        )
