# =============================================================================
# SESSION MODULE INITIALIZATION
# =============================================================================
# File: session/__init__.py
# Description: Cookie sessions and the access token denylist
# =============================================================================

from session.storage import TokenDenylist
from session.manager import SessionManager, set_session_cookie, clear_session_cookie

__all__ = [
    "TokenDenylist",
    "SessionManager",
    "set_session_cookie",
    "clear_session_cookie",
]
