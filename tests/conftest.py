# ruff: noqa: E402

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import ciwatch.log as ciwatch_log


@pytest.fixture(autouse=True)
def _reset_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CIWATCH_LOG_LEVEL", raising=False)
    monkeypatch.delenv("CIWATCH_TRACE", raising=False)
    monkeypatch.delenv("FORCE_COLOR", raising=False)
    monkeypatch.setattr(ciwatch_log, "_configured_level", None)
    monkeypatch.setattr(ciwatch_log, "_no_color_override", None)
    monkeypatch.setattr(ciwatch_log, "_commit_prefix", None)
