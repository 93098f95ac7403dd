from enum import Enum
from typing import Optional, Callable, Dict
from pydantic import BaseModel, Field

RULE = "═" * 67

class TermSheetTemplate(str, Enum):
	SAFE = "safe"
	CONVERTIBLE_NOTE = "convertible_note"
	PRICED_EQUITY = "priced_equity"

class TermSheetVariables(BaseModel):
	company_name: str = Field(min_length=1)
	investor_name: Optional[str] = None
	investment_amount: float = Field(gt=0)
	valuation_cap: float = Field(gt=0)  # pre-money valuation for priced equity
	discount_rate: Optional[float] = Field(default=None, ge=0, lt=100)
	pro_rata_rights: bool = False
	founder_name: Optional[str] = None
	founder_email: Optional[str] = None
	date: str

def format_currency(amount: float) -> str:
	return f"${amount:,.0f}"

def _discount(v: TermSheetVariables) -> float:
	return v.discount_rate or 20

def _pct(value: float) -> str:
	return f"{value:g}%"

def _pro_rata(v: TermSheetVariables, granted: str, withheld: str) -> str:
	title = "PRO-RATA RIGHTS" if v.pro_rata_rights else "NO PRO-RATA RIGHTS"
	return f"{title}\n   {granted if v.pro_rata_rights else withheld}"

def _signatures(v: TermSheetVariables, investor_label: str = "INVESTOR", with_email: bool = False) -> str:
	email = f"\nEmail: {v.founder_email or '[Email]'}" if with_email else ""
	return f"""SIGNATURE BLOCK

COMPANY:
_________________________________
{v.company_name}
By: {v.founder_name or '[Founder Name]'}
Title: CEO{email}
Date: _______________

{investor_label}:
_________________________________
{v.investor_name or '[Investor Name]'}
Date: _______________"""

def safe_template(v: TermSheetVariables) -> str:
	pro_rata = _pro_rata(
		v,
		"The Investor shall have the right to participate pro-rata in any subsequent equity financing rounds to maintain their ownership percentage in the Company.",
		"This Safe does not grant the Investor any pro-rata or participation rights in future financing rounds.",
	)
	return f"""SIMPLE AGREEMENT FOR FUTURE EQUITY (SAFE)
{RULE}

Company:           {v.company_name}
Investor:          {v.investor_name or '[INVESTOR NAME]'}
Investment Amount: {format_currency(v.investment_amount)}
Valuation Cap:     {format_currency(v.valuation_cap)}
Discount Rate:     {_pct(_discount(v))}
Date:              {v.date}

{RULE}

1. EVENTS
   (a) Equity Financing. On the initial closing of an Equity Financing this Safe
       converts into Safe Preferred Stock at the Conversion Price.
   (b) Liquidity Event. The Investor receives a portion of Proceeds immediately
       prior to the Liquidity Event.
   (c) Dissolution Event. The Investor receives Proceeds equal to the Purchase Amount.

2. DEFINITIONS
   "Valuation Cap" means {format_currency(v.valuation_cap)}.
   "Discount Rate" means {_pct(100 - _discount(v))}.
   "Conversion Price" means the Safe Price or the Discount Price, whichever
   results in a greater number of shares.

3. {pro_rata}

4. MISCELLANEOUS
   This Safe expires 24 months from issuance if no triggering event has occurred.

{RULE}

{_signatures(v)}
"""

def convertible_note_template(v: TermSheetVariables) -> str:
	pro_rata = _pro_rata(
		v,
		"Upon conversion, the Holder shall have the right to participate pro-rata in subsequent financing rounds.",
		"This Note does not grant the Holder any pro-rata or participation rights in future financing rounds.",
	)
	return f"""CONVERTIBLE PROMISSORY NOTE
{RULE}

Principal Amount:  {format_currency(v.investment_amount)}
Issue Date:        {v.date}
Company:           {v.company_name}
Investor:          {v.investor_name or '[INVESTOR NAME]'}
Valuation Cap:     {format_currency(v.valuation_cap)}
Discount Rate:     {_pct(_discount(v))}
Interest Rate:     8% per annum (simple interest)
Maturity Date:     24 months from Issue Date

{RULE}

1. PRINCIPAL AND INTEREST
   {v.company_name} promises to pay {v.investor_name or '[Investor Name]'} the principal sum of
   {format_currency(v.investment_amount)} with simple interest at 8% per annum.

2. CONVERSION UPON QUALIFIED FINANCING
   The outstanding balance converts at the lesser of the Valuation Cap Price
   ({format_currency(v.valuation_cap)} divided by fully-diluted capitalization) or
   {_pct(100 - _discount(v))} of the price paid in a Qualified Financing of at least $1,000,000.

3. CONVERSION UPON CHANGE OF CONTROL
   The Holder may take 2x the outstanding principal or convert at the Valuation Cap Price.

4. MATURITY
   Unconverted principal and interest are due on the Maturity Date.

5. {pro_rata}

6. GENERAL PROVISIONS
   Governed by the laws of the State of Delaware.

{RULE}

{_signatures(v, "HOLDER/INVESTOR", with_email=True)}
"""

def priced_equity_template(v: TermSheetVariables) -> str:
	post_money = v.valuation_cap + v.investment_amount
	ownership = v.investment_amount / post_money * 100
	pro_rata = _pro_rata(
		v,
		"Investors shall have the right to participate in subsequent financing rounds on a pro-rata basis.",
		"This term sheet does not include pro-rata rights for subsequent financing rounds.",
	)
	return f"""SERIES SEED PREFERRED STOCK TERM SHEET
{RULE}

Company:              {v.company_name}
Investor:             {v.investor_name or '[INVESTOR NAME]'}
Investment Amount:    {format_currency(v.investment_amount)}
Pre-Money Valuation:  {format_currency(v.valuation_cap)}
Post-Money Valuation: {format_currency(post_money)}
Ownership Percentage: {ownership:.2f}%
Date:                 {v.date}

{RULE}

1. DIVIDENDS
   8% of the Original Issue Price, non-cumulative, when declared by the Board.

2. LIQUIDATION PREFERENCE
   1x non-participating, or the as-converted amount if greater.

3. CONVERSION
   Convertible 1:1 at the holder's option; automatic on a Qualified IPO of at least $50M.

4. ANTI-DILUTION PROTECTION
   Broad-based weighted average.

5. {pro_rata}

6. BOARD COMPOSITION
   2 seats elected by Common Stock, 1 seat elected by Series Seed Preferred.

7. CLOSING CONDITIONS
   Satisfactory completion of due diligence and definitive agreements.

{RULE}

{_signatures(v)}
"""

TEMPLATES: Dict[TermSheetTemplate, Callable[[TermSheetVariables], str]] = {
	TermSheetTemplate.SAFE: safe_template,
	TermSheetTemplate.CONVERTIBLE_NOTE: convertible_note_template,
	TermSheetTemplate.PRICED_EQUITY: priced_equity_template,
}

TEMPLATE_LABELS = {
	TermSheetTemplate.SAFE: "SAFE",
	TermSheetTemplate.CONVERTIBLE_NOTE: "Convertible Note",
	TermSheetTemplate.PRICED_EQUITY: "Priced Equity (Series Seed)",
}

def render_term_sheet(template: TermSheetTemplate, variables: TermSheetVariables) -> str:
	return TEMPLATES[TermSheetTemplate(template)](variables)
