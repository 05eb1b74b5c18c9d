from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Project:
    """Local cache of a Saras project.

    `external_id` doubles as the contract id used in every Saras call.
    """

    project_id: int
    external_id: str
    name: str
    description: Optional[str] = None
    status: str = "active"
    cached_at: Optional[datetime] = None

    @property
    def contract_id(self) -> str:
        return self.external_id

    def is_closed(self) -> bool:
        return self.status == "closed"
