from __future__ import annotations

import runpy

import pytest


def test_main_module_invokes_cli_main(monkeypatch: pytest.MonkeyPatch) -> None:
    called = {"count": 0}

    def fake_main() -> int:
        called["count"] += 1
        return 0

    monkeypatch.setattr("omnicomment.cli.main", fake_main)

    with pytest.raises(SystemExit) as exc_info:
        runpy.run_module("omnicomment.__main__", run_name="__main__")

    assert exc_info.value.code == 0
    assert called["count"] == 1
