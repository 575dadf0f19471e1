from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from pocketbook import cli
from pocketbook.api import Backend
from tests.helpers.payloads import naver_payment

runner = CliRunner()


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    # configure_logging detaches package loggers from the root; keep caplog usable.
    monkeypatch.setattr(cli, "configure_logging", lambda *a, **k: None)


def test_init_status_logout(db_path: Path) -> None:
    result = runner.invoke(cli.app, ["init", str(db_path)])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["exists"] is True

    result = runner.invoke(cli.app, ["status"])
    status = json.loads(result.output)
    assert status["configured"] is True
    assert status["path"] == str(db_path)

    result = runner.invoke(cli.app, ["logout"])
    assert result.exit_code == 0
    assert json.loads(runner.invoke(cli.app, ["status"]).output)["configured"] is False


def test_sync_file_then_search(db_path: Path, tmp_path: Path) -> None:
    runner.invoke(cli.app, ["init", str(db_path)])
    owner_id = Backend().save_owner(provider="naver", alias="me", auth_blob="", credentials={})

    payload_file = tmp_path / "payments.json"
    payload_file.write_text(
        json.dumps([naver_payment("A"), naver_payment("B", n_items=1)]), encoding="utf-8"
    )

    result = runner.invoke(cli.app, ["sync", "naver", "--owner", owner_id, str(payload_file)])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["synced"] == 2

    found = json.loads(runner.invoke(cli.app, ["search", "rice cooker"]).output)
    assert found["total"] == 3

    stats = {t["name"]: t["row_count"] for t in json.loads(runner.invoke(cli.app, ["stats"]).output)}
    assert stats["pb_naver_payments"] == 2


def test_load_missing_file_fails(tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["load", str(tmp_path / "nope.db")])
    assert result.exit_code == 1


def test_sync_without_configuration_fails(tmp_path: Path) -> None:
    payload_file = tmp_path / "one.json"
    payload_file.write_text(json.dumps(naver_payment()), encoding="utf-8")
    result = runner.invoke(cli.app, ["sync", "naver", "--owner", "x", str(payload_file)])
    assert result.exit_code == 1
