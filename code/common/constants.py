# =============================================================================
#  Discord Architect
#  Copyright (C) 2025 Discord Architect contributors
#
#  This source code is released under the GNU Affero General Public License
#  version 3.0. A copy of the license is available at:
#  https://www.gnu.org/licenses/agpl-3.0.en.html
# =============================================================================

"""Shared constants used across Discord Architect modules."""

OPTION_TEXT_KEYS = [
    "DISCORD_TOKEN",
    "SERVER_ID",
    "SOURCE_CATEGORY_NAME",
    "NEW_CATEGORY_NAME",
    "LOG_FILE",
]

# Order matters: the validator reports toggle errors in this order.
OPTION_BOOL_KEYS = [
    "CREATE_ROLE_PER_CATEGORY",
    "EVERYONE_ACCESS_TO_NEW_CATEGORY",
    "SYNC_CHANNELS_TO_CATEGORY",
    "TEST_MODE",
    "AUTO_CLEANUP",
]

LOGGING_BOOL_KEYS = [
    "VERBOSE",
    "JSON_OUTPUT",
]

EXTRA_BOOL_KEYS = [
    "ROLLBACK_ON_FAILURE",
]

DEFAULTS = {
    "CREATE_ROLE_PER_CATEGORY": "true",
    "EVERYONE_ACCESS_TO_NEW_CATEGORY": "false",
    "SYNC_CHANNELS_TO_CATEGORY": "true",
    "TEST_MODE": "false",
    "AUTO_CLEANUP": "false",
    "VERBOSE": "false",
    "JSON_OUTPUT": "false",
    "ROLLBACK_ON_FAILURE": "true",
}

TRUE_VALUES = ("1", "true", "yes", "y", "on")
FALSE_VALUES = ("0", "false", "no", "n", "off")

DEFAULT_CONFIG_FILE = "config.json"
DEFAULT_NEW_CATEGORY_NAME = "NewCategory"
MIN_TOKEN_LENGTH = 50

# Automation switches read once at startup.
ENV_CONFIG_PATH = "ARCHITECT_CONFIG"
ENV_FORCE_AUTO_CLEANUP = "DISCORD_ARCHITECT_AUTO_CLEANUP"
ENV_AUTOMATED = "DISCORD_ARCHITECT_AUTO"
ENV_CI = "CI"
