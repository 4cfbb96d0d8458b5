from __future__ import annotations

from typing import Literal, Optional

from opsdesk.core.models.common import Record


class Project(Record):
    name: str
    description: Optional[str] = None
    status: Literal["bidding", "started", "active", "done"] = "bidding"
    address: Optional[str] = None
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
