from __future__ import annotations

import pytest

from db.repos.jobs_repo import JobsRepo


def test_create_and_get_round_trip(db):
    repo = JobsRepo(db)
    job = repo.create("company", ["https://www.linkedin.com/company/acme"], "s_1")

    stored = repo.get(job.id)
    assert stored is not None
    assert stored.status == "pending"
    assert stored.urls == ["https://www.linkedin.com/company/acme"]
    assert stored.snapshot_id == "s_1"
    assert stored.result is None and stored.completed_at is None
    assert repo.get("missing") is None


def test_terminal_write_happens_once(db):
    repo = JobsRepo(db)
    job = repo.create("profile", ["https://www.linkedin.com/in/a"], "s_1")

    assert repo.update_terminal(job.id, "completed", result=[{"name": "A"}]) is True
    # A second terminal write is refused and leaves the row as it was
    assert repo.update_terminal(job.id, "failed", error_message="late") is False

    stored = repo.get(job.id)
    assert stored.status == "completed"
    assert stored.result == [{"name": "A"}]
    assert stored.error_message is None
    assert stored.completed_at


def test_update_terminal_rejects_non_terminal_status(db):
    repo = JobsRepo(db)
    job = repo.create("profile", ["https://www.linkedin.com/in/a"], "s_1")
    with pytest.raises(ValueError):
        repo.update_terminal(job.id, "processing")


def test_list_is_newest_first_and_filters(db):
    repo = JobsRepo(db)
    first = repo.create("profile", ["https://www.linkedin.com/in/a"], "s_1")
    second = repo.create("company", ["https://www.linkedin.com/company/b"], "s_2")
    repo.update_terminal(first.id, "failed", error_message="nope")

    assert [j.id for j in repo.list()] == [second.id, first.id]
    assert [j.id for j in repo.list(status="failed")] == [first.id]
    assert [j.id for j in repo.list(limit=1)] == [second.id]
