# =============================================================================
# IDENTITY API SCAFFOLD - UTILITIES
# =============================================================================
# File: utils/helpers.py
# Description: Small helpers shared by models, services and middleware
# =============================================================================

from typing import Optional, Any, Dict
from datetime import datetime, timezone
from uuid import uuid4


def utc_now() -> datetime:
    """
    Get current UTC timestamp.

    Returns:
        datetime: Current UTC time with timezone info
    """
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes.

    SQLite drops the offset of ``DateTime(timezone=True)`` columns, so values
    read back must be normalised before comparing with ``utc_now()``.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_uuid() -> str:
    """Generate UUID string for primary keys."""
    return str(uuid4())


def mask_email(email: str) -> str:
    """
    Mask email address for display/logging.

    Example: test@example.com -> t***@example.com
    """
    if "@" not in email:
        return email

    local, domain = email.split("@", 1)
    return f"{local[:1]}***@{domain}"


def mask_ip(ip: Optional[str]) -> str:
    """
    Mask IP address for privacy.

    Example: 192.168.1.100 -> 192.168.x.x
    """
    if not ip:
        return "unknown"

    if ":" in ip:  # IPv6
        parts = ip.split(":")
        if len(parts) >= 2:
            return f"{parts[0]}:{parts[1]}:xxxx:xxxx"
        return ip

    parts = ip.split(".")
    if len(parts) == 4:
        return f"{parts[0]}.{parts[1]}.x.x"
    return ip


def parse_user_agent(user_agent: Optional[str]) -> Dict[str, Any]:
    """
    Parse user agent string into coarse device info stored on cookie sessions.

    Args:
        user_agent: User agent string

    Returns:
        dict: browser, os and device keys
    """
    if not user_agent:
        return {"browser": "unknown", "os": "unknown", "device": "unknown"}

    info = {
        "browser": "unknown",
        "os": "unknown",
        "device": "desktop",
    }

    ua_lower = user_agent.lower()

    # Order matters: Edge and Chrome both announce "safari"
    if "firefox" in ua_lower:
        info["browser"] = "Firefox"
    elif "edg" in ua_lower:
        info["browser"] = "Edge"
    elif "opr" in ua_lower or "opera" in ua_lower:
        info["browser"] = "Opera"
    elif "chrome" in ua_lower:
        info["browser"] = "Chrome"
    elif "safari" in ua_lower:
        info["browser"] = "Safari"

    # Mobile platforms first, iOS agents also mention "mac os x"
    if "android" in ua_lower:
        info["os"] = "Android"
        info["device"] = "mobile"
    elif "iphone" in ua_lower:
        info["os"] = "iOS"
        info["device"] = "mobile"
    elif "ipad" in ua_lower:
        info["os"] = "iOS"
        info["device"] = "tablet"
    elif "windows" in ua_lower:
        info["os"] = "Windows"
    elif "mac" in ua_lower:
        info["os"] = "macOS"
    elif "linux" in ua_lower:
        info["os"] = "Linux"

    return info
