from datetime import datetime, timezone
from typing import Optional, Dict, List, Literal
from pydantic import BaseModel, Field, computed_field

ItemStatus = Literal["pending", "parsing", "analyzing", "complete", "error"]
SessionStatus = Literal["processing", "ranking", "complete"]
SourceKind = Literal["file", "url"]

IN_FLIGHT = ("pending", "parsing", "analyzing")
TERMINAL = ("complete", "error")

def utcnow() -> str:
	return datetime.now(timezone.utc).isoformat()

class ScoreItem(BaseModel):
	score: float = Field(ge=1, le=5)
	reason: str = ""

class DDScores(BaseModel):
	team: ScoreItem
	market: ScoreItem
	product: ScoreItem
	moat: ScoreItem

class PitchSanityCheck(BaseModel):
	status: Literal["green", "amber", "red"]
	problem: str = ""
	solution: str = ""
	target_customer: str = ""
	pricing_model: str = ""
	key_metrics: List[str] = []
	claimed_tam: str = ""
	missing_info: List[str] = []

class SWOTAnalysis(BaseModel):
	strengths: List[str] = []
	weaknesses: List[str] = []
	opportunities: List[str] = []
	threats: List[str] = []

class MoatAssessment(BaseModel):
	score: float = Field(ge=0, le=10)
	type: str = "none"  # tech_ip, data_advantage, network_effects, ...
	reasoning: str = ""

class Competitor(BaseModel):
	name: str
	description: str = ""
	country: str = ""
	funding_stage: str = ""
	website_url: Optional[str] = None
	comparison: str = ""

class InvestmentSuccessRate(BaseModel):
	probability: float = Field(ge=0, le=100)
	confidence: Literal["low", "medium", "high"] = "medium"
	reasoning: str = ""
	key_risks: List[str] = []
	key_strengths: List[str] = []

class DDReport(BaseModel):
	summary: str
	scores: DDScores
	follow_up_questions: List[str] = []
	generated_at: str = Field(default_factory=utcnow)
	pitch_sanity_check: Optional[PitchSanityCheck] = None
	swot_analysis: Optional[SWOTAnalysis] = None
	moat_assessment: Optional[MoatAssessment] = None
	competitor_mapping: Optional[List[Competitor]] = None
	investment_success_rate: Optional[InvestmentSuccessRate] = None

class FileHandle(BaseModel):
	filename: str
	content_type: str = "application/pdf"
	data: bytes = b""

class AnalysisItem(BaseModel):
	id: str
	name: str
	source_kind: SourceKind
	source_ref: str  # URL, or the uploaded filename
	status: ItemStatus = "pending"
	progress: int = Field(default=0, ge=0, le=100)
	extracted_content: Optional[str] = None
	report: Optional[DDReport] = None
	error: Optional[str] = None
	file: Optional[FileHandle] = Field(default=None, exclude=True)

class DimensionBreakdown(BaseModel):
	team: float = Field(ge=0, le=5)
	market: float = Field(ge=0, le=5)
	product: float = Field(ge=0, le=5)
	moat: float = Field(ge=0, le=5)
	financials: float = Field(ge=0, le=5)

class TopEntry(BaseModel):
	item_id: str
	name: str
	rank: int = Field(ge=1, le=3)
	overall_score: float = Field(ge=0, le=100)
	reasoning: str
	strengths: List[str]
	risks: List[str]

class RankingEntry(BaseModel):
	item_id: str
	name: str
	rank: int = Field(ge=1)
	score: float = Field(ge=0, le=100)
	breakdown: DimensionBreakdown

class RankingResult(BaseModel):
	top_entries: List[TopEntry]
	all_rankings: List[RankingEntry]
	comparison_insights: str
	investment_thesis: str

class BulkSession(BaseModel):
	id: str
	created_at: str = Field(default_factory=utcnow)
	status: SessionStatus = "processing"
	items: List[AnalysisItem]
	ranking: Optional[RankingResult] = None
	completed_at: Optional[str] = None

	@computed_field
	@property
	def overall_progress(self) -> float:
		if not self.items:
			return 0.0
		return sum(i.progress for i in self.items) / len(self.items)

	@computed_field
	@property
	def completed_count(self) -> int:
		return sum(1 for i in self.items if i.status == "complete")

	@computed_field
	@property
	def error_count(self) -> int:
		return sum(1 for i in self.items if i.status == "error")

	@computed_field
	@property
	def has_recommendations(self) -> bool:
		# False while ranking is pending as well as when it was skipped
		return self.status == "complete" and self.ranking is not None

	def get_item(self, item_id: str) -> Optional[AnalysisItem]:
		for item in self.items:
			if item.id == item_id:
				return item
		return None

class IntakeResult(BaseModel):
	items: List[AnalysisItem] = []
	warnings: List[str] = []

class SessionEvent(BaseModel):
	type: str  # "session", "item", "status", "warning", "complete", "reset"
	item_id: Optional[str] = None
	message: Optional[str] = None
	session: Optional[BulkSession] = None  # None once reset

class SubmitResponse(BaseModel):
	session: BulkSession
	warnings: List[str]

class UrlImportResponse(BaseModel):
	urls: List[str]
	column: Optional[str] = None
	mapping: Dict[str, Optional[str]] = {}
