from __future__ import annotations

from typing import Literal, Optional

from opsdesk.core.models.common import Record

RfiStatus = Literal["draft", "sent", "responded", "closed", "failed"]
RFI_STATUSES = ("draft", "sent", "responded", "closed", "failed")


class Rfi(Record):
    project_id: Optional[int] = None
    customer_id: Optional[int] = None
    contact_id: Optional[int] = None
    subject: str
    message: str = ""
    priority: Literal["low", "medium", "high"] = "medium"
    response_needed_by: Optional[str] = None
    status: RfiStatus = "draft"
    sent_at: Optional[str] = None
    error_message: Optional[str] = None

    customer_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    contact_email: Optional[str] = None
    sent_by_username: Optional[str] = None
