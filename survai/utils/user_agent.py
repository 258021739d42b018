"""User agent classification for click session data."""

import re
from typing import Literal

DeviceType = Literal["DESKTOP", "MOBILE", "TABLET"]

_TABLET_PATTERN = re.compile(r"iPad|Android(?!.*Mobile)", re.IGNORECASE)
_MOBILE_PATTERN = re.compile(r"Mobile|iPhone|Android", re.IGNORECASE)


def detect_device_type(user_agent: str | None) -> DeviceType:
    if not user_agent:
        return "DESKTOP"
    if _TABLET_PATTERN.search(user_agent):
        return "TABLET"
    if _MOBILE_PATTERN.search(user_agent):
        return "MOBILE"
    return "DESKTOP"


def is_mobile_device(user_agent: str | None) -> bool:
    return bool(user_agent) and bool(_MOBILE_PATTERN.search(user_agent))
