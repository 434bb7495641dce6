"""
User-Agent parsing for browser, OS and device-class breakdowns.

Only families are extracted (Chrome, iOS, mobile), never versions or device
models, which is all the dashboard groups by. User-Agents are messy: Chrome
claims to be Safari, Edge claims to be Chrome, so pattern order matters and
the specific patterns are checked before the generic ones.

Anything we cannot classify becomes "Unknown" for browser and OS and
"desktop" for the device class.
"""

import re
from dataclasses import dataclass
from enum import Enum

UNKNOWN = "Unknown"


class DeviceClass(str, Enum):
    """Coarse device category."""
    DESKTOP = "desktop"
    MOBILE = "mobile"
    TABLET = "tablet"
    SMARTTV = "smarttv"
    CONSOLE = "console"
    WEARABLE = "wearable"


@dataclass(frozen=True)
class UserAgentInfo:
    browser: str = UNKNOWN
    os: str = UNKNOWN
    device: DeviceClass = DeviceClass.DESKTOP


# =============================================================================
# PATTERNS
# =============================================================================
# First match wins. Chromium forks go before Chrome, Chrome before Safari.

BROWSER_PATTERNS = [
    (r"Edg(?:e|A|iOS)?/", "Edge"),
    (r"OPR/|Opera", "Opera"),
    (r"Vivaldi/", "Vivaldi"),
    (r"Brave/", "Brave"),
    (r"SamsungBrowser/", "Samsung Internet"),
    (r"UCBrowser/", "UC Browser"),
    (r"YaBrowser/", "Yandex"),
    (r"DuckDuckGo/", "DuckDuckGo"),
    (r"Instagram", "Instagram"),
    (r"FBAN|FBAV", "Facebook"),
    (r"Firefox/|FxiOS/", "Firefox"),
    (r"CriOS/|Chrome/", "Chrome"),
    (r"Chromium/", "Chromium"),
    (r"Version/[\d.]+.*Safari/", "Safari"),
    (r"MSIE |Trident/", "IE"),
]

OS_PATTERNS = [
    (r"iPhone|iPod", "iOS"),
    (r"iPad", "iOS"),
    (r"Android", "Android"),
    (r"Windows Phone", "Windows Phone"),
    (r"Windows", "Windows"),
    (r"Macintosh|Mac OS X", "macOS"),
    (r"CrOS", "Chrome OS"),
    (r"Ubuntu", "Ubuntu"),
    (r"Fedora", "Fedora"),
    (r"Linux", "Linux"),
    (r"FreeBSD", "FreeBSD"),
]

# (device class, patterns) checked in order. TVs and consoles first because
# some of them also say "Mobile"; tablets before phones because iPads do too.
DEVICE_PATTERNS = [
    (DeviceClass.SMARTTV, [r"SmartTV", r"Smart-TV", r"SMART-TV", r"Web0S", r"NetCast", r"Tizen.*TV",
                           r"Roku", r"BRAVIA", r"AppleTV", r"AFT[A-Z]", r"CrKey"]),
    (DeviceClass.CONSOLE, [r"PlayStation", r"Xbox", r"Nintendo"]),
    (DeviceClass.WEARABLE, [r"Watch", r"Glass"]),
    (DeviceClass.TABLET, [r"iPad", r"Android(?!.*Mobile)", r"Tablet", r"Kindle",
                          r"Silk", r"PlayBook"]),
    (DeviceClass.MOBILE, [r"Mobile", r"iPhone", r"iPod", r"BlackBerry", r"IEMobile",
                          r"Opera Mini", r"Windows Phone"]),
]


def _first_match(ua: str, patterns: list[tuple[str, str]]) -> str:
    for pattern, name in patterns:
        if re.search(pattern, ua, re.IGNORECASE):
            return name
    return UNKNOWN


def _detect_device(ua: str) -> DeviceClass:
    for device, patterns in DEVICE_PATTERNS:
        if any(re.search(p, ua) for p in patterns):
            return device
    return DeviceClass.DESKTOP


def parse_user_agent(user_agent: str | None) -> UserAgentInfo:
    """
    Parse a User-Agent header into browser, OS and device class.

    Examples:
        >>> parse_user_agent("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) "
        ...                  "AppleWebKit/605.1.15 Version/17.0 Mobile/15E148 Safari/604.1")
        UserAgentInfo(browser='Safari', os='iOS', device=<DeviceClass.MOBILE: 'mobile'>)
    """
    if not user_agent or not user_agent.strip():
        return UserAgentInfo()

    return UserAgentInfo(
        browser=_first_match(user_agent, BROWSER_PATTERNS),
        os=_first_match(user_agent, OS_PATTERNS),
        device=_detect_device(user_agent),
    )
