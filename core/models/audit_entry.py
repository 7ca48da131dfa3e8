"""Audit history entries as returned to callers."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class AuditEntry(BaseModel):
    """One recorded change: who did what to an invoice, and when."""

    id: UUID
    user_id: UUID
    action: str
    changes: dict[str, Any]
    created_at: datetime

    model_config = {"alias_generator": to_camel, "populate_by_name": True}
