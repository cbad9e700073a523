"""Match WebRTC track events to the MSIDs of a session description."""

from .rtc.track_matcher import Kind, MatchedAndUnmatched, TrackMatcher, parse_track_ids

__all__ = ["Kind", "MatchedAndUnmatched", "TrackMatcher", "parse_track_ids"]

__version__ = "0.1.0"
