from typing import List
from schemas import AnalysisItem, DDScores, RankingResult, RankingEntry, TopEntry, DimensionBreakdown

# No financial-comparison signal without the AI ranker
FALLBACK_FINANCIALS = 3
TOP_N = 3

def aggregate_score(scores: DDScores) -> float:
	# four dimensions on 1-5, scaled to 0-100
	return (scores.team.score + scores.market.score + scores.product.score + scores.moat.score) * 5

def fallback_ranking(items: List[AnalysisItem]) -> RankingResult:
	scored = [
		(item, aggregate_score(item.report.scores))
		for item in items
		if item.status == "complete" and item.report is not None
	]
	# sorted() is stable, so equal scores keep intake order
	scored = sorted(scored, key=lambda pair: pair[1], reverse=True)
	ranked = []
	for idx, (item, score) in enumerate(scored):
		s = item.report.scores
		ranked.append(RankingEntry(
			item_id=item.id,
			name=item.name,
			rank=idx + 1,
			score=score,
			breakdown=DimensionBreakdown(
				team=s.team.score,
				market=s.market.score,
				product=s.product.score,
				moat=s.moat.score,
				financials=FALLBACK_FINANCIALS,
			),
		))
	top = [
		TopEntry(
			item_id=r.item_id,
			name=r.name,
			rank=r.rank,
			overall_score=r.score,
			reasoning=f"Ranked #{r.rank} based on overall DD scores",
			strengths=["Strong overall metrics"],
			risks=["Further analysis recommended"],
		)
		for r in ranked[:TOP_N]
	]
	return RankingResult(
		top_entries=top,
		all_rankings=ranked,
		comparison_insights="Rankings based on aggregate DD scores",
		investment_thesis="Top performers show strong fundamentals across key metrics",
	)

def ranking_problems(result: RankingResult, item_ids: List[str]) -> List[str]:
	problems = []
	ranked_ids = [r.item_id for r in result.all_rankings]
	if sorted(ranked_ids) != sorted(item_ids):
		problems.append("all_rankings does not cover exactly the analyzed startups")
	ranks = sorted(r.rank for r in result.all_rankings)
	if ranks != list(range(1, len(result.all_rankings) + 1)):
		problems.append("ranks are not contiguous from 1")
	by_rank = sorted(result.all_rankings, key=lambda r: r.rank)
	expected_top = [r.item_id for r in by_rank[:TOP_N]]
	top = sorted(result.top_entries, key=lambda t: t.rank)
	if [t.item_id for t in top] != expected_top or [t.rank for t in top] != list(range(1, len(top) + 1)):
		problems.append("top entries are not the leading ranks")
	scores = [r.score for r in result.all_rankings] + [t.overall_score for t in result.top_entries]
	dims = [v for r in result.all_rankings for v in r.breakdown.model_dump().values()]
	if any(not 0 <= s <= 100 for s in scores) or any(not 0 <= d <= 5 for d in dims):
		problems.append("scores are off-scale")
	return problems

def score_band(score: float) -> tuple[str, str]:
	if score >= 80:
		return ("strong", "C6EFCE")
	elif score >= 60:
		return ("solid", "FFF9C4")
	else:
		return ("weak", "FFCDD2")
