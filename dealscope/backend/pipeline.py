import asyncio
from dataclasses import dataclass
from functools import partial
from typing import List, Callable, Awaitable, Optional

from config import AppConfig, AISettings
from schemas import AnalysisItem, DDReport, RankingResult
from agents import AnalysisError, dd_agent, ranking_agent
from extraction import ContentExtractor
from storage import LocalDeckStorage
from tools import fallback_ranking, ranking_problems
from logger import get_logger

logger = get_logger("pipeline")

@dataclass
class BulkServices:
	extract: Callable[[str], Awaitable[str]]
	analyze: Callable[[str, str], Awaitable[DDReport]]
	rank: Callable[[List[AnalysisItem]], Awaitable[RankingResult]]
	store: Optional[Callable[[str, bytes], Awaitable[str]]] = None
	content_limit: int = 10000

def build_services(config: AppConfig, settings: AISettings) -> BulkServices:
	extractor = ContentExtractor(timeout=config.extract_timeout)
	storage = LocalDeckStorage(config.storage_dir)
	return BulkServices(
		extract=extractor.extract,
		analyze=partial(dd_agent, settings=settings),
		rank=partial(ranking_agent, settings=settings),
		store=storage.put,
		content_limit=config.content_limit,
	)

async def extract_content(item: AnalysisItem, services: BulkServices) -> str:
	try:
		if item.source_kind == "url":
			return await services.extract(item.source_ref) or ""
		if item.file is None or services.store is None:
			logger.warning("No stored deck for %s, analyzing by name only", item.name)
			return ""
		ref = await services.store(item.file.filename, item.file.data)
		return await services.extract(ref) or ""
	except Exception as e:
		# degraded report from the name alone beats failing the item
		logger.warning("Extraction failed for %s: %s", item.name, e)
		return ""

async def analyze_item(item: AnalysisItem, update: Callable[..., None], services: BulkServices) -> Optional[DDReport]:
	update(status="parsing", progress=20)
	content = await extract_content(item, services)
	update(status="analyzing", progress=50, extracted_content=content)
	try:
		report = await services.analyze(item.name, content[:services.content_limit])
		if not isinstance(report, DDReport):
			raise AnalysisError("Malformed analysis response")
	except Exception as e:
		message = str(e) or "Analysis failed"
		logger.error("Analysis failed for %s: %s", item.name, message)
		update(status="error", progress=0, error=message)
		return None
	update(status="complete", progress=100, report=report)
	return report

async def run_in_batches(items: List[AnalysisItem], worker: Callable[[AnalysisItem], Awaitable], batch_size: int = 3, settle: Optional[Callable[[AnalysisItem, BaseException], None]] = None) -> None:
	for start in range(0, len(items), batch_size):
		batch = items[start:start + batch_size]
		logger.info("Starting batch %d (%d items)", start // batch_size + 1, len(batch))
		results = await asyncio.gather(*(worker(item) for item in batch), return_exceptions=True)
		for item, result in zip(batch, results):
			if isinstance(result, BaseException):
				logger.error("Worker for %s raised: %r", item.name, result)
				if settle:
					settle(item, result)

async def rank_items(items: List[AnalysisItem], rank: Callable[[List[AnalysisItem]], Awaitable[RankingResult]], on_fallback: Optional[Callable[[str], None]] = None) -> Optional[RankingResult]:
	completed = [i for i in items if i.status == "complete" and i.report is not None]
	if len(completed) < 2:
		logger.info("Skipping ranking: %d analyzed startups", len(completed))
		return None
	try:
		result = await rank(completed)
		if not isinstance(result, RankingResult):
			raise AnalysisError("Malformed ranking response")
		problems = ranking_problems(result, [i.id for i in completed])
		if problems:
			raise AnalysisError("; ".join(problems))
		return result
	except Exception as e:
		logger.warning("Ranking failed, using score-based ranking: %s", e)
		if on_fallback:
			on_fallback(str(e))
		return fallback_ranking(completed)
