# =============================================================================
#  Discord Architect
#  Copyright (C) 2025 Discord Architect contributors
#
#  This source code is released under the GNU Affero General Public License
#  version 3.0. A copy of the license is available at:
#  https://www.gnu.org/licenses/agpl-3.0.en.html
# =============================================================================

import asyncio
import contextlib
import logging
import signal
import sys
from typing import Optional, Sequence

import aiohttp
import discord

from common.config import Config, ConfigError, CURRENT_VERSION, DiscordOptions
from common.logging_setup import (
    configure_app_logging,
    get_logger,
    log_scope,
    new_run_id,
    register_secret,
)
from common.validation import ConfigurationValidator
from architect.cleanup import CleanupService
from architect.cloner import CategoryCloner
from architect.forum_tags import ForumTagClient
from architect.prompt import ConsolePrompt
from architect.resources import CreatedResources
from architect.verification import VerificationService, log_verification_result

logger = logging.getLogger("architect")


class ArchitectHost:
    """
    Owns the gateway client and the HTTP session for one run: connect, clone,
    verify, optionally clean up, then close everything.
    """

    def __init__(
        self,
        options: DiscordOptions,
        *,
        bot: Optional[discord.Client] = None,
        prompt: Optional[ConsolePrompt] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.options = options
        self.bot = bot
        self.prompt = prompt or ConsolePrompt(options.interactive)
        self.session = session
        self.cleanup = CleanupService()
        self.verification = VerificationService()
        self._ready: Optional[asyncio.Event] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._shutting_down = False
        self.log = logger

    def _build_bot(self) -> discord.Client:
        bot = discord.Bot(intents=discord.Intents(guilds=True))
        bot.event(self.on_ready)
        return bot

    async def on_ready(self):
        logger.info("[🤖] Gateway ready as %s", self.bot.user)
        if self._ready is not None:
            self._ready.set()

    async def _connect(self) -> bool:
        """Log in and wait for READY. False when the gateway never gets there."""
        self._ready = asyncio.Event()
        try:
            await self.bot.login(self.options.token)
        except discord.LoginFailure as e:
            logger.error("[⛔] Login failed: %s", e)
            return False

        self._connect_task = asyncio.create_task(self.bot.connect(), name="gateway")
        ready_task = asyncio.create_task(self._ready.wait(), name="ready")
        done, _ = await asyncio.wait(
            {self._connect_task, ready_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if ready_task in done:
            return True

        ready_task.cancel()
        await asyncio.gather(ready_task, return_exceptions=True)
        exc = None if self._connect_task.cancelled() else self._connect_task.exception()
        logger.error("[⛔] Gateway closed before READY: %s", exc or "connection ended")
        return False

    async def start(self) -> int:
        if self.bot is None:
            self.bot = self._build_bot()
        if self.session is None:
            self.session = aiohttp.ClientSession()
        try:
            with log_scope("boot"):
                if not await self._connect():
                    return 1
                guild = self.bot.get_guild(self.options.server_id)
                if guild is None:
                    logger.error("[❌] Server %s not found.", self.options.server_id)
                    return 1
            return await self.execute(guild)
        finally:
            await self._shutdown()

    async def execute(self, guild: discord.Guild) -> int:
        """Everything after READY; exit code of the run."""
        opts = self.options
        self.log = get_logger("architect", guild_id=guild.id)
        name = opts.new_category_name or await self.prompt.ask_category_name()

        if opts.test_mode:
            self.log.info("[🧪] Running in TEST MODE - resources will be tracked for cleanup")
            self.log.debug(
                "TestMode=%s AutoCleanup=%s Interactive=%s",
                opts.test_mode,
                opts.auto_cleanup,
                opts.interactive,
            )

        cloner = CategoryCloner(
            ForumTagClient(opts.token, session=self.session), cleanup=self.cleanup
        )
        with log_scope("clone"):
            resources = await cloner.clone(guild, opts.source_category_name, name, opts)
        if resources is None:
            return 0

        self._log_created(resources)

        with log_scope("verify"):
            result = await self.verification.verify(guild, resources, opts)
            log_verification_result(result, self.log)

        if opts.test_mode:
            with log_scope("cleanup"):
                await self._handle_test_mode(guild, resources)

        self.log.info("[✅] Done.")
        await self.prompt.pause_before_exit()
        return 0

    def _log_created(self, resources: CreatedResources) -> None:
        self.log.info("[✅] Resources created successfully!")
        self.log.info(
            "   📁 Category: %s",
            resources.category_id,
            extra={"category_id": resources.category_id},
        )
        self.log.info("   📺 Channels: %d", len(resources.channel_ids))
        if resources.role_id is not None:
            self.log.info(
                "   🧩 Role: %s", resources.role_id, extra={"role_id": resources.role_id}
            )

    async def _handle_test_mode(
        self, guild: discord.Guild, resources: CreatedResources
    ) -> None:
        if self.options.auto_cleanup:
            self.log.info("[🤖] Auto-cleanup enabled - deleting created resources")
            await self.cleanup.cleanup(guild, resources)
            return

        if not self.prompt.interactive:
            self.log.info("[✅] Test mode completed - resources left intact (non-interactive)")
            return

        await self.prompt.wait_for_review()
        if await self.prompt.confirm("🗑️  Do you want to delete the created resources?"):
            self.log.info("[🧹] Starting cleanup...")
            await self.cleanup.cleanup(guild, resources)
        else:
            self.log.info("[✅] Test mode completed - resources left intact")

    async def _shutdown(self):
        """Close the HTTP session, then the gateway client. Safe to call twice."""
        if self._shutting_down:
            return
        self._shutting_down = True
        logger.debug("Shutting down...")

        if self.session is not None and not self.session.closed:
            with contextlib.suppress(Exception):
                await self.session.close()

        if self.bot is not None and not self.bot.is_closed():
            with contextlib.suppress(Exception):
                await self.bot.close()

        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
            await asyncio.gather(self._connect_task, return_exceptions=True)

    def run(self) -> int:
        """
        Runs one clone on a fresh event loop. SIGINT / SIGTERM cancel the run,
        which still closes the session and the client on the way out.
        """
        logger.info("[✨] Starting Discord Architect %s", CURRENT_VERSION)
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        main_task = loop.create_task(self.start())
        for sig in (signal.SIGTERM, signal.SIGINT):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, main_task.cancel)

        try:
            return loop.run_until_complete(main_task)
        except asyncio.CancelledError:
            logger.warning("[🛑] Interrupted; shut down before finishing")
            return 130
        finally:
            pending = asyncio.all_tasks(loop=loop)
            for task in pending:
                task.cancel()
            loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    try:
        config = Config(argv=argv)
    except ConfigError as e:
        configure_app_logging()
        logger.error("[⛔] %s", e)
        return 1

    options = config.to_options()
    register_secret(options.token)
    configure_app_logging(
        verbose=options.verbose,
        json_output=options.json_output,
        log_file=options.log_file,
    )
    new_run_id()

    with log_scope("boot"):
        result = ConfigurationValidator(config.raw).validate()
        if not result.is_valid:
            logger.error("[⛔] Configuration is invalid:\n%s", result.error_message)
            return 1

    try:
        return ArchitectHost(options).run()
    except Exception:
        logger.exception("[⛔] Run failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())
