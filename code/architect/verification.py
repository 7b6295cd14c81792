# =============================================================================
#  Discord Architect
#  Copyright (C) 2025 Discord Architect contributors
#
#  This source code is released under the GNU Affero General Public License
#  version 3.0. A copy of the license is available at:
#  https://www.gnu.org/licenses/agpl-3.0.en.html
# =============================================================================

"""
Post-run verification.

Read-only: resolves every created resource through the guild cache and
checks visibility, role access and permission inheritance. Nothing here
writes to Discord.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

import discord

from common.config import DiscordOptions
from architect.resources import CreatedResources

logger = logging.getLogger("architect.verification")


class FindingType(Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True)
class VerificationFinding:
    type: FindingType
    category: str
    message: str
    description: str


@dataclass(frozen=True)
class VerificationResult:
    findings: List[VerificationFinding] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    summary: str = ""

    def count(self, kind: FindingType) -> int:
        return sum(1 for f in self.findings if f.type is kind)


def _hidden_from_everyone(obj: Any, guild: discord.Guild) -> bool:
    return obj.overwrites_for(guild.default_role).view_channel is False


def _inherits(channel: Any, category: Any) -> bool:
    overwrites = getattr(channel, "overwrites", None) or {}
    if not overwrites:
        return True
    return overwrites == (getattr(category, "overwrites", None) or {})


class VerificationService:
    def __init__(self):
        self._findings: List[VerificationFinding] = []
        self._recommendations: List[str] = []

    def _add(self, kind: FindingType, category: str, message: str, description: str):
        self._findings.append(VerificationFinding(kind, category, message, description))

    async def verify(
        self,
        guild: discord.Guild,
        resources: CreatedResources,
        options: DiscordOptions,
    ) -> VerificationResult:
        logger.info("[🔍] Starting post-run verification...")
        self._findings = []
        self._recommendations = []

        category = self._verify_category(guild, resources.category_id)
        self._verify_channels(guild, resources.channel_ids)
        if resources.role_id is not None:
            self._verify_role(guild, resources.role_id, category)
        if category is not None:
            self._verify_inheritance(guild, category, resources, options)

        findings = list(self._findings)
        recommendations = list(self._recommendations)
        return VerificationResult(
            findings=findings,
            recommendations=recommendations,
            summary=generate_summary(findings, recommendations),
        )

    def _verify_category(self, guild: discord.Guild, category_id: Optional[int]):
        if category_id is None:
            self._add(
                FindingType.ERROR,
                "Category",
                "Category ID is null",
                "The category was not created successfully.",
            )
            return None

        category = guild.get_channel(int(category_id))
        if category is None:
            self._add(
                FindingType.ERROR,
                "Category",
                f"Category with ID {category_id} not found",
                "The category may have been deleted or the ID is incorrect.",
            )
            return None

        if _hidden_from_everyone(category, guild):
            self._add(
                FindingType.WARNING,
                "Category",
                f"Category '{category.name}' is hidden from @everyone",
                "The category may not be visible to regular users.",
            )
            self._recommendations.append(
                "Consider allowing @everyone to view the category if it should be public."
            )
        else:
            self._add(
                FindingType.SUCCESS,
                "Category",
                f"Category '{category.name}' exists and is accessible",
                "The category is properly configured.",
            )
        return category

    def _verify_channels(self, guild: discord.Guild, channel_ids) -> None:
        if not channel_ids:
            self._add(
                FindingType.WARNING,
                "Channels",
                "No channels were created",
                "The cloning process may not have created any channels.",
            )
            return

        visible = 0
        hidden = 0
        for cid in channel_ids:
            ch = guild.get_channel(int(cid))
            if ch is None:
                self._add(
                    FindingType.ERROR,
                    "Channel",
                    f"Channel with ID {cid} not found",
                    "The channel may have been deleted or the ID is incorrect.",
                )
                continue
            if _hidden_from_everyone(ch, guild):
                hidden += 1
                self._add(
                    FindingType.WARNING,
                    "Channel",
                    f"Channel '{ch.name}' is hidden from @everyone",
                    "The channel may not be visible to regular users.",
                )
            else:
                visible += 1
                self._add(
                    FindingType.SUCCESS,
                    "Channel",
                    f"Channel '{ch.name}' exists and is accessible",
                    "The channel is properly configured.",
                )

        if hidden:
            self._recommendations.append(
                f"Consider reviewing permissions for {hidden} hidden channels."
            )
        self._add(
            FindingType.INFO,
            "Channels",
            f"Verified {visible}/{len(channel_ids)} channels",
            f"Successfully verified {visible} channels, {hidden} are hidden from @everyone.",
        )

    def _verify_role(self, guild: discord.Guild, role_id: int, category) -> None:
        role = guild.get_role(int(role_id))
        if role is None:
            self._add(
                FindingType.ERROR,
                "Role",
                f"Role with ID {role_id} not found",
                "The role may have been deleted or the ID is incorrect.",
            )
            return

        self._add(
            FindingType.SUCCESS,
            "Role",
            f"Role '{role.name}' exists",
            "The role was created successfully.",
        )
        if category is None:
            return

        if category.overwrites_for(role).view_channel is True:
            self._add(
                FindingType.SUCCESS,
                "Role",
                f"Role '{role.name}' has view permissions on category",
                "The role can access the category.",
            )
        else:
            self._add(
                FindingType.WARNING,
                "Role",
                f"Role '{role.name}' may not have proper permissions on category",
                "The role may not be able to access the category.",
            )
            self._recommendations.append(
                f"Ensure role '{role.name}' has proper permissions on the category."
            )

    def _verify_inheritance(
        self,
        guild: discord.Guild,
        category,
        resources: CreatedResources,
        options: DiscordOptions,
    ) -> None:
        if options.sync_channels_to_category:
            total = len(resources.channel_ids)
            synced = 0
            for cid in resources.channel_ids:
                ch = guild.get_channel(int(cid))
                if ch is not None and _inherits(ch, category):
                    synced += 1

            if synced == total:
                self._add(
                    FindingType.SUCCESS,
                    "Permissions",
                    "All channels are synced to category",
                    "Channel permissions are properly inherited from the category.",
                )
            else:
                self._add(
                    FindingType.WARNING,
                    "Permissions",
                    f"Only {synced}/{total} channels are synced to category",
                    "Some channels may have custom permission overwrites.",
                )
                self._recommendations.append(
                    "Review channel permissions to ensure they match the category settings."
                )

        if not options.everyone_access_to_new_category:
            if _hidden_from_everyone(category, guild):
                self._add(
                    FindingType.SUCCESS,
                    "Permissions",
                    "@everyone access is properly restricted",
                    "The category is hidden from @everyone as configured.",
                )
            else:
                self._add(
                    FindingType.WARNING,
                    "Permissions",
                    "@everyone may have access to the category",
                    "The category may be visible to @everyone despite configuration.",
                )
                self._recommendations.append(
                    "Verify that @everyone access is properly restricted if intended."
                )


def generate_summary(
    findings: List[VerificationFinding], recommendations: List[str]
) -> str:
    counts = {k: sum(1 for f in findings if f.type is k) for k in FindingType}
    summary = (
        f"Verification Summary: {counts[FindingType.SUCCESS]} ✅ Success, "
        f"{counts[FindingType.WARNING]} ⚠️ Warnings, "
        f"{counts[FindingType.ERROR]} ❌ Errors, "
        f"{counts[FindingType.INFO]} ℹ️ Info"
    )
    if recommendations:
        bullets = "\n".join(f"• {r}" for r in recommendations)
        summary += f"\n\nRecommendations:\n{bullets}"
    return summary


_ICONS = {
    FindingType.SUCCESS: "✅",
    FindingType.WARNING: "⚠️",
    FindingType.ERROR: "❌",
    FindingType.INFO: "ℹ️",
}

_LEVELS = {
    FindingType.SUCCESS: logging.INFO,
    FindingType.INFO: logging.INFO,
    FindingType.WARNING: logging.WARNING,
    FindingType.ERROR: logging.ERROR,
}


def log_verification_result(result: VerificationResult, log=None) -> None:
    log = log or logger
    log.info("[📊] Verification Results:")
    for f in result.findings:
        log.log(
            _LEVELS[f.type],
            "  %s [%s] %s",
            _ICONS[f.type],
            f.category,
            f.message,
            extra={"finding": f.type.value},
        )
        if f.description:
            log.log(_LEVELS[f.type], "     %s", f.description)

    if result.recommendations:
        log.info("[💡] Recommendations:")
        for r in result.recommendations:
            log.info("  • %s", r)

    log.info("[📋] %s", result.summary.split("\n\n", 1)[0])
