"""
Semantic test: command-line exit codes.

Invariant:
Configuration problems exit with 2 before any network access; --plan
prints the selection and exits 0; a partial run exits 1.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from nexrad_migration.runtime import entrypoint


def _write_config(tmp_path: Path, **overrides) -> Path:
    raw = {
        "site": "KDIX",
        "date": "2024-12-12",
        "input_root": str(tmp_path / "data_pvol"),
        "output_root": str(tmp_path / "data_vpts"),
        "max_workers": 1,
    }
    raw.update(overrides)
    path = tmp_path / "config.json"
    path.write_text(json.dumps(raw), encoding="utf-8")
    return path


def test_mode_flag_is_required(tmp_path: Path) -> None:
    assert entrypoint.main(["--config", str(_write_config(tmp_path))]) == entrypoint.EXIT_CONFIG


def test_invalid_config_exits_with_config_code(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def no_network(cfg):
        raise AssertionError("store must not be built for an invalid config")

    monkeypatch.setattr(entrypoint, "_build_store", no_network)
    path = _write_config(tmp_path, window={"start": "180000", "end": "090000"})

    assert entrypoint.main(["--config", str(path), "--plan"]) == entrypoint.EXIT_CONFIG


def test_plan_prints_summary(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    make_store,
    key_factory,
) -> None:
    store, _fake = make_store([key_factory("093015"), key_factory("220000")])
    monkeypatch.setattr(entrypoint, "_build_store", lambda cfg: store)
    path = _write_config(tmp_path, window={"start": "090000", "end": "120000"})

    assert entrypoint.main(["--config", str(path), "--plan"]) == entrypoint.EXIT_OK

    out = capsys.readouterr().out
    assert "Prefix: 2024/12/12/KDIX/" in out
    assert "Listed: 2" in out
    assert "Selected: 1" in out


def test_partial_run_exits_one(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    make_store,
    backend_factory,
    key_factory,
) -> None:
    store, _fake = make_store([key_factory("010000"), key_factory("020000")])
    backend = backend_factory(fail_on={"KDIX20241212_020000_V06"})
    monkeypatch.setattr(entrypoint, "_build_store", lambda cfg: store)
    monkeypatch.setattr(entrypoint, "_build_backend", lambda cfg: backend)
    report = tmp_path / "reports" / "report.json"

    code = entrypoint.main(
        ["--config", str(_write_config(tmp_path)), "--run", "--report", str(report)]
    )

    assert code == entrypoint.EXIT_PARTIAL
    assert report.exists()
    out = capsys.readouterr().out
    assert "Failed conversion:" in out
    assert "KDIX20241212_020000_V06" in out
