# =============================================================================
#  Discord Architect
#  Copyright (C) 2025 Discord Architect contributors
#
#  This source code is released under the GNU Affero General Public License
#  version 3.0. A copy of the license is available at:
#  https://www.gnu.org/licenses/agpl-3.0.en.html
# =============================================================================

from __future__ import annotations
import argparse
import json
import logging
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence

from common.constants import (
    DEFAULT_CONFIG_FILE,
    DEFAULTS,
    ENV_AUTOMATED,
    ENV_CI,
    ENV_CONFIG_PATH,
    ENV_FORCE_AUTO_CLEANUP,
    EXTRA_BOOL_KEYS,
    LOGGING_BOOL_KEYS,
    OPTION_BOOL_KEYS,
    OPTION_TEXT_KEYS,
    TRUE_VALUES,
)

logger = logging.getLogger(__name__)
CURRENT_VERSION = "v1.0.0"

KNOWN_KEYS = (
    OPTION_TEXT_KEYS + OPTION_BOOL_KEYS + LOGGING_BOOL_KEYS + EXTRA_BOOL_KEYS
)

# Friendlier spellings accepted in config files.
_FILE_KEY_ALIASES = {
    "TOKEN": "DISCORD_TOKEN",
    "GUILD_ID": "SERVER_ID",
    "SOURCE_CATEGORY": "SOURCE_CATEGORY_NAME",
    "NEW_CATEGORY": "NEW_CATEGORY_NAME",
    "JSON": "JSON_OUTPUT",
}


class ConfigError(Exception):
    """Raised when an explicitly requested config file can't be used."""


@dataclass(frozen=True)
class DiscordOptions:
    """Immutable snapshot of everything one run needs to know."""

    token: str = field(default="", repr=False)
    server_id: int = 0
    source_category_name: str = ""
    create_role_per_category: bool = True
    everyone_access_to_new_category: bool = False
    sync_channels_to_category: bool = True
    test_mode: bool = False
    auto_cleanup: bool = False
    verbose: bool = False
    json_output: bool = False
    new_category_name: Optional[str] = None
    interactive: bool = True
    rollback_on_failure: bool = True
    log_file: Optional[str] = None


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="discord-architect",
        description="Clone a template Discord category (channels, permissions, forum tags) into a new category.",
    )
    parser.add_argument("--config", default=None, help="Path to a JSON config file.")
    parser.add_argument("--token", default=None, help="Bot token.")
    parser.add_argument("--server-id", default=None, help="Target server (guild) ID.")
    parser.add_argument(
        "--source-category", default=None, help="Name of the template category."
    )
    parser.add_argument(
        "--new-category",
        default=None,
        help="Name of the category to create. Prompted for when omitted.",
    )
    parser.add_argument(
        "--create-role",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Create a role named after the new category.",
    )
    parser.add_argument(
        "--everyone-access",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Leave the new category visible to @everyone.",
    )
    parser.add_argument(
        "--sync-channels",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Resync each cloned channel's permissions to the category.",
    )
    parser.add_argument(
        "--rollback",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Delete everything created so far when a clone fails midway.",
    )
    parser.add_argument(
        "--test-mode",
        action="store_true",
        default=None,
        help="Track created resources and offer to delete them afterwards.",
    )
    parser.add_argument(
        "--auto-cleanup",
        action="store_true",
        default=None,
        help="In test mode, delete created resources without asking.",
    )
    parser.add_argument("--verbose", action="store_true", default=None)
    parser.add_argument("--json", action="store_true", default=None)
    parser.add_argument("--log-file", default=None, help="Also log to this file.")
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Never read from the console.",
    )
    return parser


_CLI_KEYS = {
    "token": "DISCORD_TOKEN",
    "server_id": "SERVER_ID",
    "source_category": "SOURCE_CATEGORY_NAME",
    "new_category": "NEW_CATEGORY_NAME",
    "log_file": "LOG_FILE",
    "create_role": "CREATE_ROLE_PER_CATEGORY",
    "everyone_access": "EVERYONE_ACCESS_TO_NEW_CATEGORY",
    "sync_channels": "SYNC_CHANNELS_TO_CATEGORY",
    "rollback": "ROLLBACK_ON_FAILURE",
    "test_mode": "TEST_MODE",
    "auto_cleanup": "AUTO_CLEANUP",
    "verbose": "VERBOSE",
    "json": "JSON_OUTPUT",
}


def _as_raw(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _normalize_key(key: str) -> str:
    k = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", str(key).strip())
    k = k.replace("-", "_").replace(":", "_").upper()
    return _FILE_KEY_ALIASES.get(k, k)


def load_config_file(path: Optional[str], *, required: bool = False) -> Dict[str, str]:
    """
    Read a JSON config file into raw string values keyed like the environment.
    Accepts flat keys or a "discord" section; camelCase / kebab-case keys are
    normalized ("SourceCategoryName" -> SOURCE_CATEGORY_NAME).
    """
    p = Path(path) if path else Path(DEFAULT_CONFIG_FILE)
    if not p.is_file():
        if required:
            raise ConfigError(f"Config file not found: {p}")
        return {}

    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigError(f"Could not read config file {p}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {p} must contain a JSON object")

    for section in ("discord", "Discord"):
        if isinstance(data.get(section), dict):
            data = data[section]
            break

    out: Dict[str, str] = {}
    for k, v in data.items():
        key = _normalize_key(k)
        raw = _as_raw(v)
        if key in KNOWN_KEYS and raw is not None:
            out[key] = raw
    logger.debug("Loaded %d keys from %s", len(out), p)
    return out


class Config:
    """
    Layered configuration: defaults < config file < environment < command line.
    `raw` keeps the merged string values for validation; the upper-case
    attributes hold the parsed values.
    """

    def __init__(
        self,
        argv: Optional[Sequence[str]] = None,
        environ: Optional[Mapping[str, str]] = None,
        stdin=None,
        logger: Optional[logging.Logger] = None,
    ):
        self.logger = (logger or logging.getLogger(__name__)).getChild(
            self.__class__.__name__
        )
        self.args = build_arg_parser().parse_args(argv)
        self.environ = os.environ if environ is None else environ

        config_path = self.args.config or self.environ.get(ENV_CONFIG_PATH)
        self.file_values = load_config_file(config_path, required=bool(config_path))
        self.env_values = {
            k: v for k, v in self.environ.items() if k in KNOWN_KEYS and v != ""
        }
        self.cli_values: Dict[str, str] = {}
        for attr, key in _CLI_KEYS.items():
            raw = _as_raw(getattr(self.args, attr, None))
            if raw is not None:
                self.cli_values[key] = raw

        self.raw: Dict[str, str] = dict(DEFAULTS)
        self.raw.update(self.file_values)
        self.raw.update(self.env_values)
        self.raw.update(self.cli_values)

        def _str(key: str, default: Optional[str] = None) -> Optional[str]:
            v = self.raw.get(key)
            if v is None or v.strip() == "":
                return default
            return v

        def _int(key: str, default: int = 0) -> int:
            try:
                return int(str(self.raw.get(key)).strip())
            except (TypeError, ValueError):
                return default

        def _bool(key: str) -> bool:
            raw = (self.raw.get(key) or "").strip().lower()
            return raw in TRUE_VALUES

        # --- Tokens / IDs / names ---
        self.DISCORD_TOKEN = (_str("DISCORD_TOKEN", "") or "").strip()
        self.SERVER_ID = _int("SERVER_ID", 0)
        self.SOURCE_CATEGORY_NAME = _str("SOURCE_CATEGORY_NAME", "") or ""
        self.NEW_CATEGORY_NAME = _str("NEW_CATEGORY_NAME")
        self.LOG_FILE = _str("LOG_FILE")

        # --- Feature flags ---
        self.CREATE_ROLE_PER_CATEGORY = _bool("CREATE_ROLE_PER_CATEGORY")
        self.EVERYONE_ACCESS_TO_NEW_CATEGORY = _bool("EVERYONE_ACCESS_TO_NEW_CATEGORY")
        self.SYNC_CHANNELS_TO_CATEGORY = _bool("SYNC_CHANNELS_TO_CATEGORY")
        self.TEST_MODE = _bool("TEST_MODE")
        self.AUTO_CLEANUP = _bool("AUTO_CLEANUP")
        self.ROLLBACK_ON_FAILURE = _bool("ROLLBACK_ON_FAILURE")

        # --- Logging ---
        self.VERBOSE = _bool("VERBOSE")
        self.JSON_OUTPUT = _bool("JSON_OUTPUT")

        if self.environ.get(ENV_FORCE_AUTO_CLEANUP) == "true":
            self.TEST_MODE = True
            self.AUTO_CLEANUP = True

        self.INTERACTIVE = self._resolve_interactive(stdin if stdin is not None else sys.stdin)

    def _resolve_interactive(self, stdin) -> bool:
        """Decided once here; nothing downstream sniffs the environment again."""
        if self.args.non_interactive:
            return False
        if self.environ.get(ENV_AUTOMATED) == "true":
            return False
        if self.TEST_MODE and self.environ.get(ENV_CI) == "true":
            return False
        isatty = getattr(stdin, "isatty", None)
        try:
            return bool(isatty and isatty())
        except (OSError, ValueError):
            return False

    def to_options(self) -> DiscordOptions:
        return DiscordOptions(
            token=self.DISCORD_TOKEN,
            server_id=self.SERVER_ID,
            source_category_name=self.SOURCE_CATEGORY_NAME,
            create_role_per_category=self.CREATE_ROLE_PER_CATEGORY,
            everyone_access_to_new_category=self.EVERYONE_ACCESS_TO_NEW_CATEGORY,
            sync_channels_to_category=self.SYNC_CHANNELS_TO_CATEGORY,
            test_mode=self.TEST_MODE,
            auto_cleanup=self.AUTO_CLEANUP,
            verbose=self.VERBOSE,
            json_output=self.JSON_OUTPUT,
            new_category_name=self.NEW_CATEGORY_NAME,
            interactive=self.INTERACTIVE,
            rollback_on_failure=self.ROLLBACK_ON_FAILURE,
            log_file=self.LOG_FILE,
        )
