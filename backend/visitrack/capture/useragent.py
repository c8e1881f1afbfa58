"""Browser, OS and device detection from a User-Agent string.

Order matters: Edge user agents also contain "Chrome", and Chrome user
agents also contain "Safari". iOS user agents mention "Mac OS X", and
Android user agents mention "Linux".
"""

import re

UNKNOWN = "Unknown"

MOBILE_PATTERN = re.compile(
    r"Android|webOS|iPhone|iPad|iPod|BlackBerry|IEMobile|Opera Mini|Mobile|CriOS",
    re.IGNORECASE,
)
TABLET_PATTERN = re.compile(r"iPad|tablet", re.IGNORECASE)


def detect_browser(user_agent: str) -> str:
    ua = user_agent or ""
    if "Edg" in ua:
        return "Edge"
    if "Chrome" in ua:
        return "Chrome"
    if "Firefox" in ua:
        return "Firefox"
    if "Safari" in ua:
        return "Safari"
    if "MSIE" in ua or "Trident/" in ua:
        return "Internet Explorer"
    return UNKNOWN


def detect_os(user_agent: str) -> str:
    ua = user_agent or ""
    if "Windows" in ua:
        return "Windows"
    if "iPhone" in ua or "iPad" in ua:
        return "iOS"
    if "Mac" in ua:
        return "MacOS"
    if "Android" in ua:
        return "Android"
    if "Linux" in ua:
        return "Linux"
    return UNKNOWN


def detect_device(user_agent: str) -> str:
    """Desktop, Mobile or Tablet"""
    ua = user_agent or ""
    if not MOBILE_PATTERN.search(ua):
        return "Desktop"

    is_android_tablet = re.search(r"Android", ua, re.IGNORECASE) and not re.search(r"Mobile", ua, re.IGNORECASE)
    if TABLET_PATTERN.search(ua) or is_android_tablet:
        return "Tablet"
    return "Mobile"


def describe_user_agent(user_agent: str) -> dict:
    """Visitor fields derived from a User-Agent header"""
    return {
        "browser": detect_browser(user_agent),
        "os": detect_os(user_agent),
        "device_info": detect_device(user_agent),
    }
