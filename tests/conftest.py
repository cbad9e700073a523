"""
Shared SDP fixtures.

Descriptions are written with LF and converted to CRLF, which is what
browsers and aiortc put on the wire.
"""

import pytest


def lf2crlf(text: str) -> str:
    return text.replace("\n", "\r\n")


SESSION_HEADER = """v=0
o=- 4611731400430051336 2 IN IP4 127.0.0.1
s=-
t=0 0
a=group:BUNDLE 0 1
a=msid-semantic: WMS stream1
"""


def audio_section(mid: str, *msid_lines: str) -> str:
    lines = [
        "m=audio 9 UDP/TLS/RTP/SAVPF 111",
        "c=IN IP4 0.0.0.0",
        f"a=mid:{mid}",
        "a=sendrecv",
        *msid_lines,
        "a=rtpmap:111 opus/48000/2",
    ]
    return "\n".join(lines) + "\n"


def video_section(mid: str, *msid_lines: str) -> str:
    lines = [
        "m=video 9 UDP/TLS/RTP/SAVPF 96",
        "c=IN IP4 0.0.0.0",
        f"a=mid:{mid}",
        "a=sendrecv",
        *msid_lines,
        "a=rtpmap:96 VP8/90000",
    ]
    return "\n".join(lines) + "\n"


def build_sdp(*sections: str) -> str:
    return lf2crlf(SESSION_HEADER + "".join(sections))


@pytest.fixture
def sdp_a() -> str:
    """One audio and one video section, one track each."""
    return build_sdp(
        audio_section("0", "a=msid:stream1 trackA1"),
        video_section("1", "a=msid:stream1 trackV1"),
    )


@pytest.fixture
def sdp_two_video() -> str:
    return build_sdp(
        video_section("0", "a=msid:stream1 trackV1"),
        video_section("1", "a=msid:stream1 trackV2"),
    )


@pytest.fixture
def sdp_without_a1() -> str:
    """Renegotiated: the audio line no longer carries trackA1."""
    return build_sdp(
        audio_section("0"),
        video_section("1", "a=msid:stream1 trackV1"),
    )
