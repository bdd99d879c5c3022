"""Anonymous session fingerprinting and user-agent classification."""

import hashlib
import re
from dataclasses import dataclass
from typing import Optional

_FINGERPRINT = re.compile(r"^session_[a-f0-9]{32}$")


@dataclass(frozen=True)
class BrowserInfo:
    browser: str
    platform: str
    mobile: bool


def generate_session_fingerprint(
    user_agent: Optional[str],
    client_ip: Optional[str],
    environment: str = "development",
) -> str:
    """Stable, non-reversible fingerprint for a browser.

    The same user agent, client address and environment always map to the same
    session, so repeated requests land on one ``user_sessions`` row.
    """
    components = [user_agent or "unknown-ua", client_ip or "unknown-ip", environment]
    digest = hashlib.sha256("|".join(components).encode("utf-8")).hexdigest()
    return f"session_{digest[:32]}"


def is_valid_session_fingerprint(fingerprint: str) -> bool:
    return bool(_FINGERPRINT.match(fingerprint or ""))


def extract_browser_info(user_agent: Optional[str]) -> BrowserInfo:
    if not user_agent:
        return BrowserInfo(browser="unknown", platform="unknown", mobile=False)

    ua = user_agent.lower()

    # Edge and Chrome both advertise "chrome"; check the more specific token first
    if "edg" in ua:
        browser = "edge"
    elif "chrome" in ua:
        browser = "chrome"
    elif "firefox" in ua:
        browser = "firefox"
    elif "safari" in ua:
        browser = "safari"
    else:
        browser = "unknown"

    if "android" in ua:
        platform = "android"
    elif "iphone" in ua or "ipad" in ua:
        platform = "ios"
    elif "windows" in ua:
        platform = "windows"
    elif "mac" in ua:
        platform = "macos"
    elif "linux" in ua:
        platform = "linux"
    else:
        platform = "unknown"

    mobile = "mobile" in ua or "android" in ua or "iphone" in ua
    return BrowserInfo(browser=browser, platform=platform, mobile=mobile)
