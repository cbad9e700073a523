"""Local capture stream and its mute/pause toggles.

Thin layer around aiortc's `MediaPlayer`: open capture devices, wrap their
tracks so they can be disabled, and toggle all tracks of one kind at once.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import av
from aiortc import MediaStreamTrack
from aiortc.contrib.media import MediaPlayer

from ..config import CaptureConfig


logger = logging.getLogger(__name__)


DEFAULT_CONSTRAINTS: Dict[str, Any] = {"audio": True, "video": True}


class MediaAcquisitionError(RuntimeError):
    """Capture devices could not be opened. The cause is chained."""

    def __init__(self, message: str, constraints: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.constraints = dict(constraints or {})


def _silence_like(frame: av.AudioFrame) -> av.AudioFrame:
    silent = av.AudioFrame(format=frame.format.name, layout=frame.layout.name, samples=frame.samples)
    for p in silent.planes:
        p.update(bytes(p.buffer_size))
    silent.pts = frame.pts
    silent.sample_rate = frame.sample_rate
    silent.time_base = frame.time_base
    return silent


def _black_like(frame: av.VideoFrame) -> av.VideoFrame:
    black = av.VideoFrame(width=frame.width, height=frame.height, format="yuv420p")
    # Y=0, U=V=128
    black.planes[0].update(bytes(black.planes[0].buffer_size))
    for p in black.planes[1:]:
        p.update(b"\x80" * p.buffer_size)
    black.pts = frame.pts
    black.time_base = frame.time_base
    return black


class ToggleTrack(MediaStreamTrack):
    """Pass-through track that sends silence / black frames while disabled."""

    def __init__(self, source: MediaStreamTrack):
        super().__init__()
        self.kind = source.kind
        self._source = source
        self.enabled = True

    @property
    def source(self) -> MediaStreamTrack:
        return self._source

    async def recv(self):  # type: ignore[override]
        frame = await self._source.recv()
        if self.enabled:
            return frame
        if isinstance(frame, av.AudioFrame):
            return _silence_like(frame)
        if isinstance(frame, av.VideoFrame):
            return _black_like(frame)
        return frame

    def stop(self) -> None:  # type: ignore[override]
        try:
            self._source.stop()
        finally:
            super().stop()


class LocalStream:
    """A set of local tracks plus the players that keep them alive."""

    def __init__(
        self,
        tracks: Sequence[MediaStreamTrack],
        *,
        players: Sequence[Any] = (),
        muted: bool = False,
        paused: bool = False,
    ):
        self._tracks: List[ToggleTrack] = [t if isinstance(t, ToggleTrack) else ToggleTrack(t) for t in tracks]
        self._players = list(players)
        self._muted = False
        self._paused = False
        self.mute_audio(muted)
        self.pause_video(paused)

    @property
    def muted(self) -> bool:
        return self._muted

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def tracks(self) -> List[ToggleTrack]:
        return list(self._tracks)

    @property
    def audio_tracks(self) -> List[ToggleTrack]:
        return [t for t in self._tracks if t.kind == "audio"]

    @property
    def video_tracks(self) -> List[ToggleTrack]:
        return [t for t in self._tracks if t.kind == "video"]

    def mute_audio(self, mute: bool = True) -> "LocalStream":
        if bool(mute) == self._muted:
            return self
        for t in self.audio_tracks:
            t.enabled = not mute
        self._muted = bool(mute)
        logger.debug("local stream muted=%s audio_tracks=%s", self._muted, len(self.audio_tracks))
        return self

    def pause_video(self, pause: bool = True) -> "LocalStream":
        if bool(pause) == self._paused:
            return self
        for t in self.video_tracks:
            t.enabled = not pause
        self._paused = bool(pause)
        logger.debug("local stream paused=%s video_tracks=%s", self._paused, len(self.video_tracks))
        return self

    def close(self) -> None:
        """Best-effort stop of all tracks; stopping them releases the players."""
        tracks = self._tracks
        self._tracks = []
        self._players = []
        for t in tracks:
            try:
                t.stop()
            except Exception:
                logger.debug("local stream track stop failed kind=%s", t.kind, exc_info=True)


def _release_player(player: Any) -> None:
    for track in (getattr(player, "audio", None), getattr(player, "video", None)):
        if track is None:
            continue
        try:
            track.stop()
        except Exception:
            logger.debug("capture release failed kind=%s", track.kind, exc_info=True)


def _open_player(
    candidates: Sequence[Tuple[str, str]],
    kind: str,
    options: Optional[Dict[str, str]] = None,
) -> Tuple[Optional[MediaPlayer], Optional[Exception]]:
    """Try each (format, device) pair until one yields a `kind` track."""
    last_error: Optional[Exception] = None
    for fmt, device in candidates:
        try:
            player = MediaPlayer(device, format=fmt, options=options)
        except Exception as e:
            logger.debug("capture open failed kind=%s format=%s device=%s: %s", kind, fmt, device, e)
            last_error = e
            continue
        track = getattr(player, kind, None)
        if track is not None:
            logger.info("capture opened kind=%s format=%s device=%s", kind, fmt, device)
            return player, None
        _release_player(player)
        last_error = RuntimeError(f"{fmt}:{device} has no {kind} stream")
    return None, last_error


async def get_user_media(
    constraints: Optional[Dict[str, Any]] = None,
    *,
    muted: bool = False,
    paused: bool = False,
    config: Optional[CaptureConfig] = None,
) -> LocalStream:
    """Open capture devices for the requested kinds.

    Raises MediaAcquisitionError if nothing is requested or if any requested
    kind cannot be opened.
    """

    if constraints is None:
        constraints = dict(DEFAULT_CONSTRAINTS)
    cfg = config or CaptureConfig.from_env()

    wanted = [kind for kind in ("audio", "video") if constraints.get(kind)]
    if not wanted:
        raise MediaAcquisitionError("no media kind requested", constraints)

    players: List[MediaPlayer] = []
    tracks: List[MediaStreamTrack] = []
    for kind in wanted:
        if kind == "audio":
            candidates, options = cfg.audio_candidates(), None
        else:
            candidates, options = cfg.video_candidates(), cfg.video_options()

        player, error = await asyncio.to_thread(_open_player, candidates, kind, options)
        if player is None:
            LocalStream(tracks, players=players).close()
            raise MediaAcquisitionError(f"no {kind} capture backend available", constraints) from error
        players.append(player)
        tracks.append(getattr(player, kind))

    return LocalStream(tracks, players=players, muted=muted, paused=paused)
