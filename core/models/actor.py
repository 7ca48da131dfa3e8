"""The user credited with an invoice change."""

from uuid import UUID

from pydantic import BaseModel


class Actor(BaseModel):
    """Authenticated user or the system account."""

    id: UUID
    name: str | None = None
    is_system: bool = False

    model_config = {"frozen": True}
