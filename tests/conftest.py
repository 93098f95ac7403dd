"""Shared test fixtures."""

import asyncio
from typing import Dict, List, Optional, Tuple

import pytest

from schemas import AnalysisItem, DDReport, RankingResult
from pipeline import BulkServices


def build_report(team: float = 3, market: float = 3, product: float = 3, moat: float = 3) -> DDReport:
    return DDReport(
        summary="A promising startup.",
        scores={
            "team": {"score": team, "reason": "team"},
            "market": {"score": market, "reason": "market"},
            "product": {"score": product, "reason": "product"},
            "moat": {"score": moat, "reason": "moat"},
        },
        follow_up_questions=["What is your burn rate?"],
    )


def build_items(count: int, kind: str = "url") -> List[AnalysisItem]:
    return [
        AnalysisItem(
            id=f"item-{i}",
            name=f"startup-{i}",
            source_kind=kind,
            source_ref=f"https://decks.example.com/startup-{i}.pdf",
        )
        for i in range(1, count + 1)
    ]


def build_ranking(items: List[AnalysisItem]) -> RankingResult:
    """A well-formed ranking service answer that reverses intake order."""
    ordered = list(reversed(items))
    return RankingResult(
        top_entries=[
            {
                "item_id": item.id, "name": item.name, "rank": idx + 1, "overall_score": 90 - idx,
                "reasoning": "Best team", "strengths": ["team"], "risks": ["market"],
            }
            for idx, item in enumerate(ordered[:3])
        ],
        all_rankings=[
            {
                "item_id": item.id, "name": item.name, "rank": idx + 1, "score": 90 - idx,
                "breakdown": {"team": 4, "market": 4, "product": 4, "moat": 4, "financials": 4},
            }
            for idx, item in enumerate(ordered)
        ],
        comparison_insights="Compared on team and market.",
        investment_thesis="Back the strongest team.",
    )


class FakeServices:
    """Scriptable stand-ins for the extraction, analysis, ranking and storage collaborators."""

    def __init__(self):
        self.log: List[Tuple[str, str]] = []
        self.scores: Dict[str, Tuple[float, float, float, float]] = {}
        self.fail_names: set = set()
        self.extract_fail: set = set()
        self.delays: Dict[str, float] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.rank_result: Optional[RankingResult] = None
        self.rank_error: Optional[Exception] = None
        self.rank_calls: List[List[str]] = []
        self.stored: List[str] = []

    async def extract(self, ref: str) -> str:
        self.log.append(("extract", ref))
        if ref in self.extract_fail:
            raise RuntimeError("extraction service down")
        return f"deck text for {ref}"

    async def analyze(self, name: str, content: str) -> DDReport:
        self.log.append(("analyze", name))
        if name in self.gates:
            await self.gates[name].wait()
        await asyncio.sleep(self.delays.get(name, 0))
        if name in self.fail_names:
            raise RuntimeError(f"AI gateway error for {name}")
        self.log.append(("done", name))
        return build_report(*self.scores.get(name, (3, 3, 3, 3)))

    async def rank(self, items: List[AnalysisItem]) -> RankingResult:
        self.rank_calls.append([i.id for i in items])
        if self.rank_error:
            raise self.rank_error
        return self.rank_result

    async def store(self, filename: str, data: bytes) -> str:
        ref = f"/stored/{filename}"
        self.stored.append(ref)
        return ref

    def services(self, content_limit: int = 10000) -> BulkServices:
        return BulkServices(
            extract=self.extract,
            analyze=self.analyze,
            rank=self.rank,
            store=self.store,
            content_limit=content_limit,
        )


@pytest.fixture
def make_report():
    """Factory for DD reports with the given four dimension scores."""
    return build_report


@pytest.fixture
def make_items():
    """Factory for pending analysis items."""
    return build_items


@pytest.fixture
def fake() -> FakeServices:
    return FakeServices()


@pytest.fixture
def make_ranking():
    """Factory for primary-path ranking results over the given items."""
    return build_ranking
