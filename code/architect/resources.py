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
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class CreatedResources:
    """IDs of everything one clone run created. Never persisted."""

    category_id: Optional[int] = None
    channel_ids: Tuple[int, ...] = field(default_factory=tuple)
    role_id: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.category_id is None and not self.channel_ids and self.role_id is None


class ResourceTracker:
    """Records IDs the moment a resource exists, so a failed run can be undone."""

    def __init__(self):
        self.category_id: Optional[int] = None
        self.channel_ids: List[int] = []
        self.role_id: Optional[int] = None

    def track_category(self, category_id: int) -> None:
        self.category_id = int(category_id)

    def track_channel(self, channel_id: int) -> None:
        self.channel_ids.append(int(channel_id))

    def track_role(self, role_id: int) -> None:
        self.role_id = int(role_id)

    def freeze(self) -> CreatedResources:
        return CreatedResources(
            category_id=self.category_id,
            channel_ids=tuple(self.channel_ids),
            role_id=self.role_id,
        )
