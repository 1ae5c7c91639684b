"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc, parse_iso
from utils.user_context import (
    get_current_email,
    set_current_email,
    clear_current_email,
)
