from __future__ import annotations

from datetime import date

from hr_onboarding.models.setting import CustomPlaceholder
from hr_onboarding.services.company_settings import CompanySettings
from hr_onboarding.services.placeholders import (
    build_token_map,
    extract_placeholders,
    placeholder_tokens,
    render_email,
    render_text,
)

COMPANY = CompanySettings(company_name="Acme", hr_name="Priya", hr_email="hr@acme.example.com", onboarding_form_url="https://forms.test/x")


def test_render_is_deterministic():
    tokens = build_token_map({"firstName": "Asha", "companyName": "Acme"})
    first = render_email("Hi {{firstName}}", "Welcome to {{companyName}}", tokens)
    second = render_email("Hi {{firstName}}", "Welcome to {{companyName}}", tokens)
    assert first == second
    assert first.subject == "Hi Asha"
    assert first.body == "Welcome to Acme"


def test_longer_tokens_replace_before_their_prefixes():
    tokens = build_token_map({"name": "SHORT", "nameFull": "LONG"})
    assert render_text("{{nameFull}} / {{name}}", tokens) == "LONG / SHORT"


def test_unknown_tokens_are_left_in_place_and_none_renders_empty():
    tokens = build_token_map({"firstName": "Asha", "lastName": None})
    out = render_text("{{firstName}}{{lastName}} {{mysteryKey}}", tokens)
    assert out == "Asha {{mysteryKey}}"
    assert extract_placeholders(out) == ["mysteryKey"]


def test_later_layers_win_and_braced_keys_are_accepted():
    tokens = build_token_map({"companyName": "Acme"}, {"{{companyName}}": "Acme Labs"})
    assert tokens == {"{{companyName}}": "Acme Labs"}


def test_extract_placeholders_keeps_first_seen_order():
    assert extract_placeholders("{{b}} {{ a }}", "{{b}} {{c}}") == ["b", "a", "c"]


async def test_placeholder_tokens_layers_candidate_company_custom_overrides(db_session, make_candidate):
    candidate = await make_candidate(joining=date(2024, 6, 10), reporting_manager="Ravi")
    db_session.add(CustomPlaceholder(placeholder_key="officeWifi", value="acme-guest", is_active=1))
    db_session.add(CustomPlaceholder(placeholder_key="retired", value="old", is_active=0))
    await db_session.flush()

    tokens = await placeholder_tokens(db_session, company=COMPANY, candidate=candidate, overrides={"hrName": "Meera"})

    assert tokens["{{fullName}}"] == "Asha Rao"
    assert tokens["{{joiningDate}}"] == "10 Jun 2024"
    assert tokens["{{reportingManager}}"] == "Ravi"
    assert tokens["{{companyName}}"] == "Acme"
    assert tokens["{{officeWifi}}"] == "acme-guest"
    assert tokens["{{hrName}}"] == "Meera"
    assert "{{retired}}" not in tokens


async def test_preview_without_candidate_uses_sample_values(db_session):
    tokens = await placeholder_tokens(db_session, company=COMPANY)
    assert tokens["{{firstName}}"] == "John"
    assert tokens["{{formLink}}"] == "https://forms.test/x"
