from __future__ import annotations

import sqlite3

from db.repos.companies_repo import CompaniesRepo
from db.repos.people_repo import PeopleRepo
from db.repos.positions_repo import PositionsRepo
from pipelines.import_scraped import import_profiles
from pipelines.steps.persist_profiles import match_company_by_name


def _profile(name, slug, company=None, title="Engineer", company_url=None):
    record = {"name": name, "input_url": f"https://www.linkedin.com/in/{slug}/"}
    if company:
        record["experience"] = [{"title": title, "company": company, "company_url": company_url}]
    return record


def test_partial_failure_import_keeps_good_records(db):
    records = [
        _profile("Alice Able", "alice", company="Acme"),
        {"name": "LinkedIn Member", "input_url": "https://www.linkedin.com/in/private-1"},
        _profile("Carol Cole", "carol", company="Beta"),
    ]

    ctx = import_profiles(db, records)

    people = PeopleRepo(db).list_all()
    assert sorted(p["name"] for p in people) == ["Alice Able", "Carol Cole"]
    statuses = [o.status for o in ctx.settled_outcomes()]
    assert statuses == ["saved", "error", "saved"]
    rejected = ctx.outcomes[1]
    assert rejected.url == "https://www.linkedin.com/in/private-1"
    assert "LinkedIn Member" in rejected.message


def test_person_fields_and_positions_are_stored(db):
    record = _profile("Dana Dorn", "Dana-Dorn", company="Acme", title="CTO",
                      company_url="https://linkedin.com/company/acme?trk=x")
    record.update({"city": "Lisbon, Portugal", "avatar": "https://img/d.jpg", "about": "Hi"})

    ctx = import_profiles(db, [record])
    outcome = ctx.outcomes[0]

    person = PeopleRepo(db).get(outcome.entity_id)
    assert person["linkedin_url"] == "https://www.linkedin.com/in/dana-dorn"
    assert (person["city"], person["country"]) == ("Lisbon", "Portugal")
    assert person["notes"] == "Hi"

    positions = PositionsRepo(db).list_for_person(outcome.entity_id)
    assert [(p["title"], p["company_name"], p["active"]) for p in positions] == [("CTO", "Acme", 1)]
    assert positions[0]["company_linkedin_url"] == "https://www.linkedin.com/company/acme"


def test_company_resolution_prefers_slug_then_name_then_batch(db):
    companies = CompaniesRepo(db)
    by_slug = companies.insert("Acme Holdings", linkedin_url="https://www.linkedin.com/company/acme")
    by_name = companies.insert("Beta Corporation")

    records = [
        _profile("A", "a", company="Acme", company_url="https://linkedin.com/company/ACME/"),
        _profile("B", "b", company="Beta"),
        _profile("C", "c", company="NewCo"),
        _profile("D", "d", company="newco"),
    ]
    ctx = import_profiles(db, records)

    company_of = {
        o.name: PositionsRepo(db).list_for_person(o.entity_id)[0]["company_id"]
        for o in ctx.settled_outcomes()
    }
    assert company_of["A"] == by_slug
    assert company_of["B"] == by_name
    # Created once for the batch, then reused
    assert company_of["C"] == company_of["D"]
    assert len(companies.list_all()) == 3


def test_reimport_matches_existing_person_by_slug(db):
    first = import_profiles(db, [_profile("Eve", "eve", company="Acme")])
    second = import_profiles(db, [_profile("Eve E.", "EVE", company="Acme")])

    assert first.outcomes[0].status == "saved"
    again = second.outcomes[0]
    assert again.status == "exists"
    assert again.entity_id == first.outcomes[0].entity_id
    # Same (person, company, title) is not linked twice
    assert again.position_ids == []
    assert len(PeopleRepo(db).list_all()) == 1


def test_database_error_is_isolated_to_one_record(db, monkeypatch):
    original = PeopleRepo.insert_person

    def flaky_insert(self, name, *args, **kwargs):
        if name == "Bob":
            raise sqlite3.IntegrityError("NOT NULL constraint failed")
        return original(self, name, *args, **kwargs)

    monkeypatch.setattr(PeopleRepo, "insert_person", flaky_insert)
    ctx = import_profiles(db, [_profile("Ann", "ann"), _profile("Bob", "bob"), _profile("Cid", "cid")])

    statuses = [o.status for o in ctx.settled_outcomes()]
    assert statuses == ["saved", "error", "saved"]
    assert ctx.outcomes[1].message.startswith("Database error:")


def test_discovered_companies_come_from_current_positions(db):
    CompaniesRepo(db).insert("Acme")
    ctx = import_profiles(db, [
        _profile("A", "a", company="Acme"),
        _profile("B", "b", company="Zeta", company_url="https://linkedin.com/company/zeta"),
    ])
    discovered = {d["name"]: d for d in ctx.meta["discovered_companies"]}
    assert discovered["Acme"]["already_exists"] is True
    assert discovered["Zeta"]["already_exists"] is False
    assert discovered["Zeta"]["linkedin_url"] == "https://www.linkedin.com/company/zeta"


def test_match_company_by_name_is_containment_both_ways():
    companies = [{"id": 1, "name": "Acme Corp"}, {"id": 2, "name": "Io"}]
    assert match_company_by_name("acme", companies)["id"] == 1
    assert match_company_by_name("ACME CORP GmbH", companies)["id"] == 1
    # Short names merge loosely
    assert match_company_by_name("Biology Labs", companies)["id"] == 2
    assert match_company_by_name("Zeta", companies) is None
