"""One WebRTC connection to one peer, with track identity matching.

aiortc raises "track" events from inside setRemoteDescription, so every
remote description is fed to the matcher before it is applied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from aiortc import (
    MediaStreamTrack,
    RTCPeerConnection,
    RTCSessionDescription,
)
from aiortc.rtcconfiguration import RTCConfiguration
from aiortc.sdp import candidate_from_sdp

from .stream import LocalStream
from .track_matcher import Kind, TrackMatcher


logger = logging.getLogger(__name__)


AsyncPeerCallback = Callable[..., Awaitable[None]]


def _candidate_from_json(obj: Dict[str, Any]):
    cand_sdp = obj.get("candidate")
    if not isinstance(cand_sdp, str) or not cand_sdp:
        raise ValueError("missing candidate")
    if cand_sdp.startswith("candidate:"):
        cand_sdp = cand_sdp[len("candidate:"):]
    cand = candidate_from_sdp(cand_sdp)
    cand.sdpMid = obj.get("sdpMid")
    cand.sdpMLineIndex = obj.get("sdpMLineIndex")
    return cand


@dataclass
class PeerCallbacks:
    on_log: Optional[AsyncPeerCallback] = None  # (msg: str)
    on_connection_state: Optional[AsyncPeerCallback] = None  # (peer_id: str, state: str)
    on_track: Optional[AsyncPeerCallback] = None  # (peer_id: str, track_id: str, track, matched: bool)


class WebRTCPeer:
    def __init__(
        self,
        peer_id: str,
        local_stream: Optional[LocalStream] = None,
        callbacks: Optional[PeerCallbacks] = None,
        rtc_config: Optional[RTCConfiguration] = None,
        pc: Optional[RTCPeerConnection] = None,
    ):
        self.peer_id = peer_id
        self._callbacks = callbacks or PeerCallbacks()
        self._pc = pc if pc is not None else RTCPeerConnection(configuration=rtc_config)
        self._matcher = TrackMatcher()
        self._closed = False

        if local_stream is not None:
            self.add_local_stream(local_stream)

        @self._pc.on("connectionstatechange")
        async def on_connectionstatechange() -> None:
            state = self._pc.connectionState
            await self._log(f"pc[{self.peer_id}] connectionState={state}")
            if self._callbacks.on_connection_state:
                await self._callbacks.on_connection_state(self.peer_id, state)

        @self._pc.on("track")
        async def on_track(track) -> None:
            await self.handle_track(track)

    @property
    def matcher(self) -> TrackMatcher:
        return self._matcher

    @property
    def pc(self) -> RTCPeerConnection:
        return self._pc

    def add_local_stream(self, stream: LocalStream) -> None:
        for track in stream.tracks:
            self._pc.addTrack(track)

    async def handle_track(self, track: MediaStreamTrack) -> None:
        """Assign an MSID to an arriving track, falling back to its own id."""
        track_id: Optional[str] = None
        if track.kind in (Kind.AUDIO.value, Kind.VIDEO.value):
            track_id = self._matcher.match(track.kind)
        matched = track_id is not None
        if track_id is None:
            track_id = track.id
        await self._log(f"pc[{self.peer_id}] remote track kind={track.kind} id={track_id} matched={matched}")
        if self._callbacks.on_track:
            await self._callbacks.on_track(self.peer_id, track_id, track, matched)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._pc.close()

    async def create_offer(self) -> str:
        offer = await self._pc.createOffer()
        await self._pc.setLocalDescription(offer)
        assert self._pc.localDescription is not None
        return self._pc.localDescription.sdp

    async def apply_answer(self, sdp: str) -> None:
        await self._apply_remote(sdp, "answer")

    async def apply_offer_and_create_answer(self, sdp: str) -> str:
        await self._apply_remote(sdp, "offer")
        answer = await self._pc.createAnswer()
        await self._pc.setLocalDescription(answer)
        assert self._pc.localDescription is not None
        return self._pc.localDescription.sdp

    async def _apply_remote(self, sdp: str, sdp_type: str) -> None:
        saved = self._matcher.save()
        self._matcher.update_all(sdp)
        try:
            await self._pc.setRemoteDescription(RTCSessionDescription(sdp=sdp, type=sdp_type))
        except Exception:
            # A rejected description must not leave its ids queued.
            self._matcher.restore(saved)
            logger.info("pc[%s] remote %s rejected, matcher state restored", self.peer_id, sdp_type)
            raise

    async def add_ice_candidate(self, candidate_obj: Any) -> None:
        if not candidate_obj:
            return
        if not isinstance(candidate_obj, dict):
            return
        try:
            cand = _candidate_from_json(candidate_obj)
        except Exception:
            logger.debug("pc[%s] ignoring unparsable candidate", self.peer_id)
            return
        await self._pc.addIceCandidate(cand)

    async def _log(self, msg: str) -> None:
        logger.debug(msg)
        if self._callbacks.on_log:
            await self._callbacks.on_log(msg)
