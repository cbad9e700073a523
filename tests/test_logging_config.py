import io
import logging

import pytest

from vc_trackmatch.logging_config import RTC_LIBRARY_LOGGERS, setup_logging
from vc_trackmatch.main import main


@pytest.fixture(autouse=True)
def restore_levels(monkeypatch):
    for name in ("VC_TRACKMATCH_LOG_LEVEL", "VC_LOG_LEVEL", "VC_RTC_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    names = ("",) + RTC_LIBRARY_LOGGERS
    saved = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)


def test_library_loggers_default_to_warning():
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG
    for name in RTC_LIBRARY_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING
    assert logging.getLogger("vc_trackmatch.rtc.track_matcher").getEffectiveLevel() == logging.DEBUG


def test_levels_from_env(monkeypatch):
    monkeypatch.setenv("VC_LOG_LEVEL", "warning")
    monkeypatch.setenv("VC_RTC_LOG_LEVEL", "info")
    setup_logging()
    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("aiortc").level == logging.INFO


def test_explicit_level_wins_over_env(monkeypatch):
    monkeypatch.setenv("VC_TRACKMATCH_LOG_LEVEL", "error")
    monkeypatch.setenv("VC_RTC_LOG_LEVEL", "error")
    setup_logging("info", library_level="debug")
    assert logging.getLogger().level == logging.INFO
    assert logging.getLogger("aioice").level == logging.DEBUG


def test_cli_rtc_log_level(tmp_path, sdp_a):
    path = tmp_path / "offer.sdp"
    path.write_text(sdp_a)
    assert main(["--rtc-log-level", "error", "parse", str(path)], stdout=io.StringIO()) == 0
    assert logging.getLogger("aiortc").level == logging.ERROR
