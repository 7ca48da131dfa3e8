"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, today_utc
from utils.user_context import (
    get_current_user_id_or_none,
    set_current_user_id,
    clear_current_user_id,
    user_context,
)
