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
from dataclasses import dataclass, field
from typing import List, Optional

import discord
from discord.errors import HTTPException

from architect.resources import CreatedResources

logger = logging.getLogger("architect.cleanup")


@dataclass
class CleanupReport:
    deleted: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class CleanupService:
    """
    Deletes what a run created: channels first, then the category, then the
    role. A single item that is gone or fails to delete, for any reason, is
    logged and skipped so the rest still go.
    """

    async def cleanup(
        self, guild: discord.Guild, resources: CreatedResources
    ) -> CleanupReport:
        report = CleanupReport()
        logger.info(
            "[🧹] Cleaning up: %d channel(s), category=%s, role=%s",
            len(resources.channel_ids),
            resources.category_id,
            resources.role_id,
        )
        try:
            for cid in resources.channel_ids:
                await self._delete(
                    guild.get_channel(int(cid)), f"channel #{cid}", report
                )

            if resources.category_id is not None:
                await self._delete(
                    guild.get_channel(int(resources.category_id)),
                    f"category #{resources.category_id}",
                    report,
                )

            if resources.role_id is not None:
                await self._delete(
                    guild.get_role(int(resources.role_id)),
                    f"role #{resources.role_id}",
                    report,
                )
        except Exception:
            logger.exception("[⛔] Cleanup aborted by an unexpected error")
            raise

        logger.info(
            "[🧹] Cleanup finished: %d deleted, %d missing, %d failed",
            len(report.deleted),
            len(report.missing),
            len(report.failed),
        )
        return report

    async def _delete(self, obj: Optional[object], label: str, report: CleanupReport) -> None:
        if obj is None:
            logger.warning("[⚠️] %s not found; skipping delete", label)
            report.missing.append(label)
            return
        name = getattr(obj, "name", "?")
        try:
            await obj.delete(reason="discord-architect cleanup")
        except HTTPException as e:
            logger.warning("[⚠️] Could not delete %s '%s': %s", label, name, e)
            report.failed.append(label)
            return
        except Exception as e:
            logger.warning(
                "[⚠️] Could not delete %s '%s': %s: %s",
                label,
                name,
                type(e).__name__,
                e,
                exc_info=True,
            )
            report.failed.append(label)
            return
        logger.info("[🗑️] Deleted %s '%s'", label, name)
        report.deleted.append(label)
