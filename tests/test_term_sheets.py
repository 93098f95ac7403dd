"""Tests for term sheet templates."""

import pytest
from pydantic import ValidationError

from term_sheets import TEMPLATES, TermSheetTemplate, TermSheetVariables, render_term_sheet


@pytest.fixture
def variables() -> TermSheetVariables:
    return TermSheetVariables(
        company_name="Acme Inc",
        investor_name="Seed Fund I",
        investment_amount=500000,
        valuation_cap=4500000,
        pro_rata_rights=True,
        founder_name="Sam Lee",
        date="2026-10-19",
    )


def test_every_template_has_a_renderer() -> None:
    assert set(TEMPLATES) == set(TermSheetTemplate)


def test_safe(variables: TermSheetVariables) -> None:
    text = render_term_sheet(TermSheetTemplate.SAFE, variables)
    assert text.startswith("SIMPLE AGREEMENT FOR FUTURE EQUITY (SAFE)")
    assert "Valuation Cap:     $4,500,000" in text
    assert "Discount Rate:     20%" in text
    assert '"Discount Rate" means 80%.' in text
    assert "\n3. PRO-RATA RIGHTS" in text
    assert "By: Sam Lee" in text


def test_convertible_note_without_pro_rata(variables: TermSheetVariables) -> None:
    variables.pro_rata_rights = False
    variables.discount_rate = 15
    text = render_term_sheet("convertible_note", variables)
    assert "CONVERTIBLE PROMISSORY NOTE" in text
    assert "NO PRO-RATA RIGHTS" in text
    assert "85% of the price" in text
    assert "Email: [Email]" in text


def test_priced_equity_math(variables: TermSheetVariables) -> None:
    text = render_term_sheet(TermSheetTemplate.PRICED_EQUITY, variables)
    assert "Post-Money Valuation: $5,000,000" in text
    assert "Ownership Percentage: 10.00%" in text


def test_placeholders(variables: TermSheetVariables) -> None:
    variables.investor_name = None
    text = render_term_sheet(TermSheetTemplate.SAFE, variables)
    assert "[INVESTOR NAME]" in text
    assert "[Investor Name]" in text


def test_unknown_template(variables: TermSheetVariables) -> None:
    with pytest.raises(ValueError):
        render_term_sheet("warrant", variables)


def test_amount_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        TermSheetVariables(company_name="Acme", investment_amount=0, valuation_cap=1, date="2026-01-01")
