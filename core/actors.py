"""Resolves who is acting on an invoice."""

from core.config import InvoiceConfig
from core.models import Actor
from utils.user_context import get_current_user_id_or_none


class ActorResolver:
    """
    Maps the request's user context to an Actor.

    With no authenticated caller the configured system account is used.
    The system account is fixed when the resolver is built and never changes.
    """

    def __init__(self, config: InvoiceConfig | None = None):
        config = config or InvoiceConfig()
        self.system_account = Actor(
            id=config.system_account_id,
            name=config.system_account_name,
            is_system=True,
        )

    def resolve(self) -> Actor:
        """The authenticated user, else the system account."""
        user_id = get_current_user_id_or_none()
        if user_id is None:
            return self.system_account
        return Actor(id=user_id)
