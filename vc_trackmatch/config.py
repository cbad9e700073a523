from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional, Tuple


logger = logging.getLogger(__name__)


def _env_str(name: str) -> Optional[str]:
    v = os.environ.get(name, "").strip()
    return v or None


def _env_int(name: str, default: int) -> int:
    v = _env_str(name)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        logger.warning("ignoring %s=%r, not an integer; using %s", name, v, default)
        return default


def default_audio_backends() -> Tuple[Tuple[str, str], ...]:
    """(format, device) pairs tried when no audio device is configured."""
    if sys.platform.startswith("win"):
        return (("dshow", "audio=default"),)
    if sys.platform == "darwin":
        return (("avfoundation", "none:0"),)
    # PulseAudio is typical on desktop Linux, ALSA otherwise.
    return (("pulse", "default"), ("alsa", "default"))


def default_video_backends() -> Tuple[Tuple[str, str], ...]:
    if sys.platform.startswith("win"):
        return (("dshow", "video=Integrated Camera"),)
    if sys.platform == "darwin":
        return (("avfoundation", "0:none"),)
    return (("v4l2", "/dev/video0"),)


@dataclass
class CaptureConfig:
    """Capture device selection for `get_user_media`.

    Env vars (all optional):
    - VC_AUDIO_DEVICE / VC_AUDIO_FORMAT: ffmpeg device and input format.
    - VC_VIDEO_DEVICE / VC_VIDEO_FORMAT: same for video.
    - VC_VIDEO_SIZE: e.g. "640x480".
    - VC_VIDEO_FRAMERATE: int.
    """

    audio_device: Optional[str] = None
    audio_format: Optional[str] = None
    video_device: Optional[str] = None
    video_format: Optional[str] = None
    video_size: str = "640x480"
    video_framerate: int = 30

    @classmethod
    def from_env(cls) -> "CaptureConfig":
        return cls(
            audio_device=_env_str("VC_AUDIO_DEVICE"),
            audio_format=_env_str("VC_AUDIO_FORMAT"),
            video_device=_env_str("VC_VIDEO_DEVICE"),
            video_format=_env_str("VC_VIDEO_FORMAT"),
            video_size=_env_str("VC_VIDEO_SIZE") or cls.video_size,
            video_framerate=_env_int("VC_VIDEO_FRAMERATE", cls.video_framerate),
        )

    def audio_candidates(self) -> Tuple[Tuple[str, str], ...]:
        if self.audio_device and self.audio_format:
            return ((self.audio_format, self.audio_device),) + default_audio_backends()
        return default_audio_backends()

    def video_candidates(self) -> Tuple[Tuple[str, str], ...]:
        if self.video_device and self.video_format:
            return ((self.video_format, self.video_device),) + default_video_backends()
        return default_video_backends()

    def video_options(self) -> dict:
        return {"video_size": self.video_size, "framerate": str(self.video_framerate)}
