# =============================================================================
#  Discord Architect
#  Copyright (C) 2025 Discord Architect contributors
#
#  This source code is released under the GNU Affero General Public License
#  version 3.0. A copy of the license is available at:
#  https://www.gnu.org/licenses/agpl-3.0.en.html
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from common.constants import (
    FALSE_VALUES,
    MIN_TOKEN_LENGTH,
    OPTION_BOOL_KEYS,
    TRUE_VALUES,
)


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)

    @property
    def error_message(self) -> str:
        return "\n".join(self.errors)


class ConfigurationValidator:
    """
    Checks the merged raw configuration before anything connects to Discord.
    Rules run in a fixed order (token, server ID, source category, toggles) and
    each violated rule contributes exactly one message.
    """

    def __init__(self, raw: Mapping[str, Optional[str]]):
        self.raw = raw

    def _get(self, key: str) -> Optional[str]:
        v = self.raw.get(key)
        return None if v is None else str(v)

    def validate(self) -> ValidationResult:
        errors: List[str] = []

        token = self._get("DISCORD_TOKEN")
        if token is None or not token.strip():
            errors.append(
                "DISCORD_TOKEN is required. Set it with --token, the DISCORD_TOKEN "
                "environment variable, or config.json."
            )
        elif len(token.strip()) < MIN_TOKEN_LENGTH:
            errors.append(
                "DISCORD_TOKEN appears to be invalid (too short). Please check your bot token."
            )

        server_id = self._get("SERVER_ID")
        if server_id is None or not server_id.strip():
            errors.append(
                "SERVER_ID is required. Set it with --server-id, the SERVER_ID "
                "environment variable, or config.json."
            )
        elif not server_id.strip().isdigit() or int(server_id.strip()) == 0:
            errors.append(
                "SERVER_ID must be a valid Discord guild ID (18-digit number)."
            )

        source = self._get("SOURCE_CATEGORY_NAME")
        if source is None or not source.strip():
            errors.append(
                "SOURCE_CATEGORY_NAME is required. Set it with --source-category, the "
                "SOURCE_CATEGORY_NAME environment variable, or config.json."
            )

        for key in OPTION_BOOL_KEYS:
            v = self._get(key)
            if v is None or v == "":
                continue
            if v.strip().lower() not in TRUE_VALUES + FALSE_VALUES:
                errors.append(
                    f"{key} must be a boolean: one of "
                    f"{', '.join(TRUE_VALUES + FALSE_VALUES)}."
                )

        return ValidationResult(is_valid=not errors, errors=errors)
