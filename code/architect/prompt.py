# =============================================================================
#  Discord Architect
#  Copyright (C) 2025 Discord Architect contributors
#
#  This source code is released under the GNU Affero General Public License
#  version 3.0. A copy of the license is available at:
#  https://www.gnu.org/licenses/agpl-3.0.en.html
# =============================================================================

from __future__ import annotations
import asyncio
import logging
from typing import Callable, Optional

from common.constants import DEFAULT_NEW_CATEGORY_NAME

logger = logging.getLogger("architect.prompt")


class ConsolePrompt:
    """
    Console questions for the operator. When not interactive, nothing is read
    from stdin: names fall back to defaults and confirmations answer no.
    """

    def __init__(self, interactive: bool, reader: Optional[Callable[[str], str]] = None):
        self.interactive = interactive
        self._reader = reader or input

    async def _ask(self, question: str) -> str:
        # input() blocks; keep it off the loop so the gateway heartbeat survives.
        try:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, self._reader, question)
        except EOFError:
            return ""

    async def ask_category_name(self, default: str = DEFAULT_NEW_CATEGORY_NAME) -> str:
        if not self.interactive:
            logger.info("[🤖] Non-interactive run; using category name '%s'", default)
            return default
        name = (await self._ask("Enter new category name: ")).strip()
        return name or default

    async def wait_for_review(self) -> None:
        if not self.interactive:
            return
        await self._ask("Review the new category in Discord, then press Enter to continue...")

    async def confirm(self, question: str) -> bool:
        if not self.interactive:
            return False
        answer = (await self._ask(f"{question} (y/n): ")).strip().lower()
        return answer in ("y", "yes")

    async def pause_before_exit(self) -> None:
        if not self.interactive:
            return
        await self._ask("Press Enter to exit...")
