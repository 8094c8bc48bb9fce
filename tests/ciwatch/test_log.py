import pytest

import ciwatch.log as ciwatch_log
from ciwatch.log import LogLevel


def test_default_level_is_info() -> None:
    assert ciwatch_log.configured_level() is LogLevel.INFO
    assert ciwatch_log.is_enabled(LogLevel.DEBUG) is False


def test_trace_switch_overrides_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CIWATCH_LOG_LEVEL", "error")
    monkeypatch.setenv("CIWATCH_TRACE", "1")

    assert ciwatch_log.configured_level() is LogLevel.TRACE


def test_unknown_level_falls_back_to_info(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CIWATCH_LOG_LEVEL", "chatty")

    assert ciwatch_log.configured_level() is LogLevel.INFO


def test_warnings_go_to_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    ciwatch_log.set_no_color(True)
    ciwatch_log.info("polling main")
    ciwatch_log.warning("pytest failed (1)")
    ciwatch_log.debug("hidden")

    captured = capsys.readouterr()
    assert captured.out == "polling main\n"
    assert captured.err == "pytest failed (1)\n"


def test_commit_scope_prefixes_and_restores(capsys: pytest.CaptureFixture[str]) -> None:
    ciwatch_log.set_no_color(True)

    with ciwatch_log.commit_scope("abc1234" + "0" * 33):
        ciwatch_log.info("pytest succeeded (0)")
        with ciwatch_log.commit_scope("def5678" + "0" * 33):
            ciwatch_log.warning("black failed (1)")
        ciwatch_log.info("published")
    ciwatch_log.info("sleeping")

    captured = capsys.readouterr()
    assert captured.out.splitlines() == [
        "[abc1234] pytest succeeded (0)",
        "[abc1234] published",
        "sleeping",
    ]
    assert captured.err == "[def5678] black failed (1)\n"


@pytest.mark.parametrize(
    ("name", "level"),
    [("TRACE", LogLevel.TRACE), (" warn ", LogLevel.WARNING), ("", LogLevel.INFO)],
)
def test_parse_level(name: str, level: LogLevel) -> None:
    assert ciwatch_log.parse_level(name) is level
