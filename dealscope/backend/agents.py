import json
import re
from typing import List

from openai import AsyncOpenAI
from anthropic import AsyncAnthropic
from pydantic import ValidationError

from config import AISettings
from schemas import AnalysisItem, DDReport, RankingResult
from logger import get_logger

logger = get_logger("agents")

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

class AnalysisError(Exception):
	pass

DD_SYSTEM_PROMPT = """You are an expert venture capital analyst specializing in due diligence. You analyze startups and provide investment analysis with SWOT, moat assessment, competitor mapping and investment success probability.

Scoring guide for 1-5 scores:
- 5: Exceptional, best-in-class
- 4: Strong, above average
- 3: Average, meets expectations
- 2: Below average, concerns present
- 1: Weak, significant issues

Moat score guide (0-10): 8-10 very strong, 5-7 moderate, 2-4 weak, 0-1 none.
Respond with valid JSON only."""

DD_JSON_SHAPE = """{
  "summary": "2-3 paragraph executive summary",
  "team_score": 1-5, "team_reason": "...",
  "market_score": 1-5, "market_reason": "...",
  "product_score": 1-5, "product_reason": "...",
  "moat_score": 1-5, "moat_reason": "...",
  "follow_up_questions": ["5-8 questions for the founders"],
  "pitch_sanity_check": {"status": "green|amber|red", "problem": "", "solution": "", "target_customer": "", "pricing_model": "", "key_metrics": [], "claimed_tam": "", "missing_info": []},
  "swot_analysis": {"strengths": [], "weaknesses": [], "opportunities": [], "threats": []},
  "moat_assessment": {"score": 0-10, "type": "none|tech_ip|data_advantage|network_effects|brand|switching_costs|distribution|regulation", "reasoning": ""},
  "competitor_mapping": [{"name": "", "description": "", "country": "", "funding_stage": "", "website_url": "", "comparison": ""}],
  "investment_success_rate": {"probability": 0-100, "confidence": "low|medium|high", "reasoning": "", "key_risks": [], "key_strengths": []}
}"""

RANK_SYSTEM_PROMPT = """You are a VC investment committee chair comparing several startups that already have due diligence reports. Rank all of them, pick the top 3, and write a short comparative insight and investment thesis. Respond with valid JSON only."""

RANK_JSON_SHAPE = """{
  "top3": [{"startup_id": "", "rank": 1, "overall_score": 0-100, "reasoning": "", "key_strengths": [], "key_risks": []}],
  "all_rankings": [{"startup_id": "", "rank": 1, "score": 0-100, "breakdown": {"team": 0-5, "market": 0-5, "product": 0-5, "moat": 0-5, "financials": 0-5}}],
  "comparison_insights": "",
  "investment_thesis": ""
}"""

def make_client(settings: AISettings):
	key = settings.resolved_key()
	if settings.provider == "anthropic":
		return AsyncAnthropic(api_key=key)
	if settings.provider == "openrouter":
		return AsyncOpenAI(base_url=OPENROUTER_BASE_URL, api_key=key)
	return AsyncOpenAI(api_key=key)

def parse_json_text(text: str) -> dict:
	if not text:
		raise AnalysisError("Empty response from model")
	cleaned = re.sub(r"```(?:json)?", "", text).strip()
	try:
		return json.loads(cleaned)
	except json.JSONDecodeError:
		# models sometimes wrap the object in prose
		match = re.search(r"{.*}", cleaned, re.DOTALL)
		if match:
			try:
				return json.loads(match.group(0))
			except json.JSONDecodeError:
				pass
	raise AnalysisError("Model response was not valid JSON")

async def complete_json(settings: AISettings, system: str, prompt: str, max_tokens: int = 4000, client=None) -> dict:
	client = client or make_client(settings)
	model = settings.resolved_model()
	if settings.provider == "anthropic":
		response = await client.messages.create(
			model=model,
			max_tokens=max_tokens,
			temperature=0.4,
			system=system,
			messages=[{"role": "user", "content": prompt}]
		)
		text = response.content[0].text if response.content else ""
	else:
		response = await client.chat.completions.create(
			model=model,
			messages=[
				{"role": "system", "content": system},
				{"role": "user", "content": prompt}
			],
			response_format={"type": "json_object"},
			temperature=0.4,
			max_tokens=max_tokens
		)
		text = response.choices[0].message.content if response.choices else ""
	return parse_json_text(text)

def build_dd_prompt(name: str, content: str) -> str:
	if content:
		body = f"Pitch Deck Content:\n{content}"
	else:
		body = "No pitch deck content available - provide analysis based on the name only, make reasonable assumptions about the business."
	return f"""Analyze this startup for investment potential with comprehensive due diligence:

Startup Name: {name}

{body}

Return JSON in exactly this shape:
{DD_JSON_SHAPE}
"""

def report_from_payload(payload: dict) -> DDReport:
	missing = [k for k in ("summary", "team_score", "market_score", "product_score", "moat_score") if payload.get(k) in (None, "")]
	if missing:
		raise AnalysisError(f"DD response missing fields: {', '.join(missing)}")
	scores = {
		dim: {"score": payload[f"{dim}_score"], "reason": payload.get(f"{dim}_reason", "")}
		for dim in ("team", "market", "product", "moat")
	}
	try:
		return DDReport(
			summary=payload["summary"],
			scores=scores,
			follow_up_questions=payload.get("follow_up_questions") or [],
			pitch_sanity_check=payload.get("pitch_sanity_check"),
			swot_analysis=payload.get("swot_analysis"),
			moat_assessment=payload.get("moat_assessment"),
			competitor_mapping=payload.get("competitor_mapping"),
			investment_success_rate=payload.get("investment_success_rate"),
		)
	except ValidationError as e:
		raise AnalysisError(f"DD response did not match schema: {e.error_count()} errors") from e

async def dd_agent(name: str, content: str, settings: AISettings, client=None) -> DDReport:
	logger.info("Generating DD for %s (%d chars of deck content)", name, len(content))
	payload = await complete_json(settings, DD_SYSTEM_PROMPT, build_dd_prompt(name, content), client=client)
	return report_from_payload(payload)

def build_ranking_prompt(items: List[AnalysisItem]) -> str:
	startups = [
		{"startup_id": item.id, "name": item.name, "dd_report": item.report.model_dump(exclude={"generated_at"})}
		for item in items
	]
	return f"""Compare and rank these {len(items)} startups:

{json.dumps(startups, indent=2)}

Use each startup_id exactly as given. Ranks must run 1..{len(items)} with no gaps or ties.
Return JSON in exactly this shape:
{RANK_JSON_SHAPE}
"""

def ranking_from_payload(payload: dict, items: List[AnalysisItem]) -> RankingResult:
	names = {item.id: item.name for item in items}
	try:
		top = [
			{
				"item_id": t["startup_id"],
				"name": names.get(t["startup_id"], t.get("name", "")),
				"rank": t["rank"],
				"overall_score": t["overall_score"],
				"reasoning": t["reasoning"],
				"strengths": t.get("key_strengths") or [],
				"risks": t.get("key_risks") or [],
			}
			for t in payload["top3"]
		]
		ranked = [
			{
				"item_id": r["startup_id"],
				"name": names.get(r["startup_id"], r.get("name", "")),
				"rank": r["rank"],
				"score": r["score"],
				"breakdown": r["breakdown"],
			}
			for r in payload["all_rankings"]
		]
		return RankingResult(
			top_entries=top,
			all_rankings=ranked,
			comparison_insights=payload["comparison_insights"],
			investment_thesis=payload["investment_thesis"],
		)
	except (KeyError, TypeError) as e:
		raise AnalysisError(f"Ranking response missing field: {e}") from e
	except ValidationError as e:
		raise AnalysisError(f"Ranking response did not match schema: {e.error_count()} errors") from e

async def ranking_agent(items: List[AnalysisItem], settings: AISettings, client=None) -> RankingResult:
	if len(items) < 2:
		raise AnalysisError("Ranking needs at least two analyzed startups")
	logger.info("Ranking %d startups", len(items))
	payload = await complete_json(settings, RANK_SYSTEM_PROMPT, build_ranking_prompt(items), client=client)
	return ranking_from_payload(payload, items)
