"""Utility modules for cross-cutting concerns."""

from utils.clock import Clock, SystemClock, FrozenClock, now_utc, to_utc, parse_iso
from utils.money import round_currency
from utils.user_context import (
    AuthContext,
    get_current_auth,
    get_current_user_id,
    set_current_auth,
    clear_current_auth,
    user_context,
)
