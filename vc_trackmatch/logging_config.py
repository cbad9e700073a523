from __future__ import annotations

import logging
import os
from typing import Optional


# aiortc and aioice log every STUN/RTP transition at INFO.
RTC_LIBRARY_LOGGERS = ("aiortc", "aioice")


def _resolve_level(explicit: Optional[str], *env_names: str, default: str) -> str:
    if explicit:
        return explicit.upper()
    for name in env_names:
        v = os.environ.get(name, "").strip()
        if v:
            return v.upper()
    return default


def setup_logging(level: Optional[str] = None, *, library_level: Optional[str] = None) -> None:
    """Configure stdlib logging for the CLI and embedding apps.

    `level` applies to the root logger (env VC_TRACKMATCH_LOG_LEVEL, then
    VC_LOG_LEVEL, default INFO). `library_level` applies only to the
    WebRTC stack's loggers (env VC_RTC_LOG_LEVEL, default WARNING), so
    track matching can be traced without aiortc's connection chatter.
    """

    effective_level = _resolve_level(level, "VC_TRACKMATCH_LOG_LEVEL", "VC_LOG_LEVEL", default="INFO")
    rtc_level = _resolve_level(library_level, "VC_RTC_LOG_LEVEL", default="WARNING")

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=effective_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    else:
        root.setLevel(effective_level)

    for name in RTC_LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(rtc_level)
