from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
SANDBOX_HOME = ROOT / ".test_place" / "global-home"
os.environ.setdefault("BUNDLEKIT_HOME", str(SANDBOX_HOME))
os.environ.setdefault("BUNDLEKIT_TELEMETRY", "0")
SANDBOX_HOME.mkdir(parents=True, exist_ok=True)
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from bundlekit.settings import RuntimeSettings  # noqa: E402


@pytest.fixture()
def runtime_settings(tmp_path: Path) -> RuntimeSettings:
    return RuntimeSettings.under(tmp_path / "home")
