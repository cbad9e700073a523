"""Match remote tracks to the MSIDs of a session description.

Some WebRTC stacks raise "track" events without a usable MID or track id, so
there is no reliable way to tell which negotiated media line an arriving
track belongs to. This module works around that with an assumption about the
host runtime: track events for a given kind are raised in the same order as
that kind's MSIDs appear in the SDP.

Usage: call `TrackMatcher.update_all()` (or `update()` for one kind) with the
description that declares the arriving tracks, before the runtime raises the
track events it explains, then call `match()` from each track event handler.
`match()` returns None when nothing is queued; the caller picks its own
fallback.

Nothing here validates SDP. Malformed input degrades to "no ids".
"""

from __future__ import annotations

import enum
import logging
import re
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Iterable, List, Optional, Set, Union


logger = logging.getLogger(__name__)


class Kind(str, enum.Enum):
    AUDIO = "audio"
    VIDEO = "video"

    @classmethod
    def coerce(cls, value: Union["Kind", str]) -> "Kind":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"unknown media kind: {value!r}") from None


# a=msid:<stream-id> <track-id>, or the legacy ssrc-level
# a=ssrc:<ssrc> msid:<stream-id> <track-id>
_MSID_RE = re.compile(r"^a=(?:ssrc:\d+[ \t]+)?msid:[ \t]?(\S+)[ \t]+(\S+)\s*$")


def _media_sections(sdp: str) -> List[List[str]]:
    lines = sdp.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    sections: List[List[str]] = []
    for line in lines:
        if line.startswith("m="):
            sections.append([line])
        elif sections:
            sections[-1].append(line)
    return sections


def parse_track_ids(kind: Union[Kind, str], sdp: Any) -> List[str]:
    """Return the MSID track ids of `kind` media sections, in SDP order.

    The first occurrence of an id wins; later duplicates are dropped. Lines
    that don't look like `a=msid:<stream> <track>` are skipped.
    """

    if not isinstance(sdp, str) or not sdp:
        return []
    try:
        prefix = f"m={Kind.coerce(kind).value} "
    except ValueError:
        return []

    ids: Dict[str, None] = {}
    for section in _media_sections(sdp):
        if not section[0].startswith(prefix):
            continue
        for line in section[1:]:
            m = _MSID_RE.match(line)
            if m:
                ids.setdefault(m.group(2), None)
    return list(ids)


@dataclass
class MatchedAndUnmatched:
    """Correlation state for one kind.

    `matched` holds ids already handed out; `unmatched` is the FIFO of ids
    still waiting for a track event. The two never overlap.
    """

    matched: Set[str] = field(default_factory=set)
    unmatched: Deque[str] = field(default_factory=deque)

    def update(self, ids: Iterable[str]) -> None:
        ordered = list(dict.fromkeys(ids))
        current = set(ordered)

        # Tracks dropped by renegotiation must not stay "matched".
        self.matched.intersection_update(current)

        # Full replace: the latest description's order wins.
        self.unmatched = deque(i for i in ordered if i not in self.matched)

    def match(self) -> Optional[str]:
        if not self.unmatched:
            return None
        track_id = self.unmatched.popleft()
        self.matched.add(track_id)
        return track_id


class TrackMatcher:
    """Per-session matcher holding one `MatchedAndUnmatched` per kind."""

    def __init__(self) -> None:
        self._states: Dict[Kind, MatchedAndUnmatched] = {kind: MatchedAndUnmatched() for kind in Kind}

    @property
    def audio(self) -> MatchedAndUnmatched:
        return self._states[Kind.AUDIO]

    @property
    def video(self) -> MatchedAndUnmatched:
        return self._states[Kind.VIDEO]

    def state(self, kind: Union[Kind, str]) -> MatchedAndUnmatched:
        return self._states[Kind.coerce(kind)]

    def update(self, kind: Union[Kind, str], sdp: Any) -> None:
        k = Kind.coerce(kind)
        ids = parse_track_ids(k, sdp)
        self._states[k].update(ids)
        logger.debug("track matcher update kind=%s ids=%s unmatched=%s", k.value, len(ids), len(self._states[k].unmatched))

    def update_all(self, sdp: Any) -> None:
        """Refresh both kinds from one description snapshot."""
        for kind in Kind:
            self.update(kind, sdp)

    def match(self, kind: Union[Kind, str]) -> Optional[str]:
        k = Kind.coerce(kind)
        track_id = self._states[k].match()
        if track_id is None:
            logger.info("track matcher starved kind=%s", k.value)
        else:
            logger.debug("track matcher match kind=%s id=%s", k.value, track_id)
        return track_id

    def save(self) -> Dict[Kind, MatchedAndUnmatched]:
        """Copy of the per-kind state, for `restore()`."""
        return {
            kind: MatchedAndUnmatched(set(state.matched), deque(state.unmatched))
            for kind, state in self._states.items()
        }

    def restore(self, saved: Dict[Kind, MatchedAndUnmatched]) -> None:
        for kind, state in saved.items():
            self._states[kind] = MatchedAndUnmatched(set(state.matched), deque(state.unmatched))

    def snapshot(self) -> Dict[str, Dict[str, List[str]]]:
        return {
            kind.value: {
                "matched": sorted(state.matched),
                "unmatched": list(state.unmatched),
            }
            for kind, state in self._states.items()
        }
