from __future__ import annotations

import json

import pytest

import cli
from config.settings import get_settings
from db.connection import get_connection
from db.repos.companies_repo import CompaniesRepo
from db.schema import bootstrap
from services.brightdata_client import SnapshotPoll


@pytest.fixture
def cli_env(tmp_path, monkeypatch, fake_gateway):
    db_path = tmp_path / "cli.db"
    monkeypatch.setenv("DB_PATH", str(db_path))
    monkeypatch.setenv("BRIGHTDATA_API_KEY", "test-key")
    monkeypatch.setenv("SCRAPE_POLL_MAX_ATTEMPTS", "3")
    monkeypatch.setenv("SCRAPE_POLL_INTERVAL_MS", "1000")
    monkeypatch.setenv("POLLER_INTERVAL_SECONDS", "0.05")
    monkeypatch.setenv("SCRAPE_TRACE", "false")
    monkeypatch.delenv("APP_API_TOKEN", raising=False)
    monkeypatch.setattr(cli, "_make_gateway", lambda settings: fake_gateway)
    get_settings.cache_clear()
    yield db_path
    get_settings.cache_clear()


def _json_out(capsys):
    return json.loads(capsys.readouterr().out)


def test_bootstrap(cli_env, capsys):
    assert cli.main(["bootstrap"]) == 0
    assert "Schema ready" in capsys.readouterr().out
    assert cli_env.exists()


def test_trigger_check_and_list(cli_env, capsys, fake_gateway):
    assert cli.main(["trigger", "--type", "company", "--url", "https://linkedin.com/company/Acme"]) == 0
    triggered = _json_out(capsys)
    assert triggered["status"] == "pending"
    assert fake_gateway.triggered == [{"kind": "company", "urls": ["https://www.linkedin.com/company/acme"]}]

    assert cli.main(["check", triggered["job_id"]]) == 0
    assert _json_out(capsys)["status"] == "processing"

    fake_gateway.polls.append(SnapshotPoll(ready=False, error="Snapshot failed", status_code=200))
    assert cli.main(["check", triggered["job_id"]]) == 0
    assert _json_out(capsys) == {"job_id": triggered["job_id"], "status": "failed", "error": "Snapshot failed"}

    assert cli.main(["jobs", "--status", "failed"]) == 0
    assert [j["id"] for j in _json_out(capsys)["jobs"]] == [triggered["job_id"]]


def test_unknown_job_is_reported(cli_env, capsys):
    assert cli.main(["check", "nope"]) == 1
    assert "Error: Job not found" in capsys.readouterr().out


def test_import_profiles_from_file(cli_env, capsys, fake_gateway, tmp_path):
    urls_file = tmp_path / "urls.txt"
    urls_file.write_text("https://linkedin.com/in/alice\nhttps://linkedin.com/in/bob\n", encoding="utf-8")
    output = tmp_path / "out.json"
    fake_gateway.records = [
        {"name": "Alice A", "input_url": "https://www.linkedin.com/in/alice"},
        {"name": "Unknown", "input_url": "https://www.linkedin.com/in/bob"},
    ]

    code = cli.main(["import-profiles", "--input", str(urls_file), "--output", str(output), "--progress"])

    assert code == 0
    out = capsys.readouterr().out
    assert "LINKEDIN PROFILE IMPORT - SUMMARY" in out
    assert "[1/2] Imported profile" in out
    written = json.loads(output.read_text(encoding="utf-8"))
    assert [o["status"] for o in written["outcomes"]] == ["saved", "error"]
    assert written["summary"]["imported"] == 1


def test_import_without_valid_urls_fails(cli_env, capsys, fake_gateway):
    assert cli.main(["import-companies", "--url", "https://example.com/acme"]) == 1
    assert "Error: Please enter at least one valid LinkedIn company URL" in capsys.readouterr().out
    assert fake_gateway.triggered == []


def test_sync_companies_waits_for_job(cli_env, capsys, fake_gateway):
    conn = get_connection(str(cli_env))
    try:
        bootstrap(conn)
        acme = CompaniesRepo(conn).insert("Acme", linkedin_url="https://linkedin.com/company/acme")
    finally:
        conn.close()
    fake_gateway.polls.append(SnapshotPoll(
        ready=True,
        records=[{"name": "Acme", "url": "https://www.linkedin.com/company/acme", "website": "https://acme.com"}],
        status_code=200,
    ))

    assert cli.main(["sync-companies", "--company-id", str(acme)]) == 0

    assert "completed" in capsys.readouterr().out
    conn = get_connection(str(cli_env))
    try:
        row = CompaniesRepo(conn).get(acme)
    finally:
        conn.close()
    assert row["website"] == "https://acme.com"
    assert row["linkedin_url"] == "https://www.linkedin.com/company/acme"
