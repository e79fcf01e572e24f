from __future__ import annotations

from models.scraped_profile import ParsedCompany
from services.validation import (
    PROFILE_SCRAPE_FAILED,
    ScrapeValidator,
    ValidationResult,
    format_validation_message,
    is_company_payload_valid,
    is_profile_payload_valid,
    parse_company,
    parse_profile,
    validate_parsed_company,
)


JANE = {
    "name": "Jane Doe",
    "input_url": "https://www.linkedin.com/in/Jane-Doe/",
    "position": "CTO",
    "city": "Berlin, Germany",
    "avatar": "https://media.example/jane.jpg",
    "about": "Builds things",
    "current_company": {"name": "Acme", "link": "https://www.linkedin.com/company/acme?trk=1"},
    "experience": [
        {"title": "CTO", "company": "Acme Corp", "company_url": "https://linkedin.com/company/Acme-Corp", "duration": "2 yrs"},
        {"title": "Engineer", "company": "Beta"},
        {"title": "Beta"},
        {"company": "Gamma"},
        {"title": "Intern", "company": "beta"},
    ],
}


def test_profile_payload_gate():
    assert is_profile_payload_valid({"name": "Jane"})
    assert is_profile_payload_valid({"first_name": "Jane", "last_name": "Doe"})
    assert not is_profile_payload_valid({"first_name": "Jane"})
    assert not is_profile_payload_valid({"name": "Jane", "error": "private profile"})
    assert not is_profile_payload_valid({"name": "Jane", "status": "error"})
    assert not is_profile_payload_valid({})
    assert not is_profile_payload_valid("Jane")


def test_company_payload_gate():
    assert is_company_payload_valid({"name": "Acme"})
    assert not is_company_payload_valid({"name": "UNKNOWN"})
    assert not is_company_payload_valid({"name": "Acme", "error": "dead page"})
    assert not is_company_payload_valid({"url": "https://linkedin.com/company/acme"})


def test_parse_profile_builds_person_and_positions():
    parsed = parse_profile(JANE)

    assert parsed.person.name == "Jane Doe"
    assert parsed.person.headline == "CTO"
    assert parsed.person.linkedin_url == "https://www.linkedin.com/in/jane-doe"
    assert parsed.person.location == "Berlin, Germany"

    # Current company goes first; title==company and title-less entries are dropped;
    # duplicates by lowercase company name keep the first entry
    assert [(p.company, p.title, p.is_current) for p in parsed.positions] == [
        ("Acme", "CTO", True),
        ("Acme Corp", "CTO", True),
        ("Beta", "Engineer", False),
    ]
    assert parsed.positions[0].company_linkedin_url == "https://www.linkedin.com/company/acme"
    assert parsed.positions[1].company_linkedin_url == "https://www.linkedin.com/company/acme-corp"
    assert parsed.positions[1].duration == "2 yrs"


def test_current_company_already_listed_is_not_repeated():
    record = {
        "name": "Sam",
        "position": "Lead",
        "current_company": {"name": "BETA"},
        "experience": [{"job_title": "Lead", "company_name": "Beta"}],
    }
    parsed = parse_profile(record)
    assert [(p.company, p.title) for p in parsed.positions] == [("Beta", "Lead")]


def test_validator_rejects_placeholder_names_and_counts():
    validator = ScrapeValidator()

    parsed, result = validator.check_profile({"name": "LinkedIn Member"})
    assert parsed is None
    assert result.errors == ['Invalid or missing name: "LinkedIn Member"']

    parsed, result = validator.check_profile({"error": "not found"})
    assert parsed is None and result.errors == [PROFILE_SCRAPE_FAILED]

    parsed, result = validator.check_profile(JANE)
    assert parsed is not None and result.is_valid

    stats = validator.get_validation_stats()
    assert stats["total_records"] == 3
    assert stats["valid_records"] == 1
    assert stats["invalid_records"] == 2


def test_parse_and_validate_company():
    company = parse_company({
        "name": "Acme",
        "url": "https://www.linkedin.com/company/acme/",
        "input_url": "linkedin.com/company/ACME",
        "image": "https://logo.example/acme.png",
    })
    assert company.slug == "acme"
    assert company.linkedin_url == "https://www.linkedin.com/company/acme"
    assert company.logo_url == "https://logo.example/acme.png"

    result = validate_parsed_company(company)
    assert result.is_valid
    assert result.warnings == ["No website URL found"]

    placeholder = validate_parsed_company(ParsedCompany(name="Unknown Company"))
    assert not placeholder.is_valid


def test_format_validation_message():
    assert format_validation_message(ValidationResult(is_valid=True)) == "No issues found"
    message = format_validation_message(ValidationResult(is_valid=False, errors=["a", "b"], warnings=["w"]))
    assert message == "Errors: a; b | Warnings: w"
