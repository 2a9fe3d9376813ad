# =============================================================================
# UTILS MODULE INITIALIZATION
# =============================================================================
# File: utils/__init__.py
# Description: Utils module exports
# =============================================================================

from utils.helpers import (
    utc_now,
    ensure_utc,
    generate_uuid,
    mask_email,
    mask_ip,
    parse_user_agent,
)

__all__ = [
    "utc_now",
    "ensure_utc",
    "generate_uuid",
    "mask_email",
    "mask_ip",
    "parse_user_agent",
]
