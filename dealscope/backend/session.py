import asyncio
import uuid
from typing import Callable, Dict, List, Optional

from schemas import AnalysisItem, BulkSession, SessionEvent, IN_FLIGHT, TERMINAL, utcnow
from pipeline import BulkServices, analyze_item, run_in_batches, rank_items
from logger import get_logger

logger = get_logger("session")

ITEM_TRANSITIONS = {
	"pending": ("parsing",),
	"parsing": ("analyzing", "error"),
	"analyzing": ("complete", "error"),
	"complete": (),
	"error": (),
}
SESSION_TRANSITIONS = {
	"processing": ("ranking",),
	"ranking": ("complete",),
	"complete": (),
}
ITEM_FIELDS = ("status", "progress", "extracted_content", "report", "error")

class InvalidTransition(Exception):
	pass

def apply_item_update(item: AnalysisItem, changes: dict) -> AnalysisItem:
	unknown = set(changes) - set(ITEM_FIELDS)
	if unknown:
		raise InvalidTransition(f"Cannot update {', '.join(sorted(unknown))}")
	if item.status in TERMINAL:
		raise InvalidTransition(f"Item {item.id} is already {item.status}")
	status = changes.get("status", item.status)
	if status != item.status and status not in ITEM_TRANSITIONS[item.status]:
		raise InvalidTransition(f"{item.status} -> {status}")
	progress = changes.get("progress", item.progress)
	if not 0 <= progress <= 100:
		raise InvalidTransition(f"progress {progress} out of range")
	if status == "error":
		changes = {**changes, "progress": 0, "report": None}
	elif progress < item.progress:
		raise InvalidTransition(f"progress {item.progress} -> {progress}")
	elif status == "complete":
		if changes.get("report") is None or progress != 100:
			raise InvalidTransition("complete requires a report at progress 100")
	elif progress == 100:
		raise InvalidTransition("progress 100 is reserved for complete")
	return item.model_copy(update=changes)

class BulkSessionManager:
	"""Owns the one live BulkSession and the task orchestrating it.

	Every write names the session it belongs to; writes for a session that
	has since been reset or replaced are dropped.
	"""

	def __init__(self, services: BulkServices, batch_size: int = 3):
		self.services = services
		self.batch_size = batch_size
		self._session: Optional[BulkSession] = None
		self._subscribers: List[Callable[[SessionEvent], None]] = []
		self._tasks: Dict[str, asyncio.Task] = {}

	def current(self) -> Optional[BulkSession]:
		return self._session.model_copy(deep=True) if self._session else None

	def is_current(self, session_id: str) -> bool:
		return self._session is not None and self._session.id == session_id

	def subscribe(self, callback: Callable[[SessionEvent], None]) -> Callable[[], None]:
		self._subscribers.append(callback)
		def unsubscribe():
			if callback in self._subscribers:
				self._subscribers.remove(callback)
		return unsubscribe

	def _publish(self, type: str, item_id: str = None, message: str = None) -> None:
		event = SessionEvent(type=type, item_id=item_id, message=message, session=self.current())
		for callback in list(self._subscribers):
			try:
				callback(event)
			except Exception:
				logger.exception("Session subscriber failed on %s event", type)

	def update_item(self, session_id: str, item_id: str, **changes) -> bool:
		if not self.is_current(session_id):
			logger.debug("Dropping update for stale session %s", session_id)
			return False
		items = self._session.items
		idx = next((i for i, item in enumerate(items) if item.id == item_id), None)
		if idx is None:
			raise KeyError(item_id)
		items[idx] = apply_item_update(items[idx], changes)
		item = items[idx]
		self._publish("item", item_id, item.error if item.status == "error" else f"{item.name}: {item.status}")
		return True

	def fail_item(self, session_id: str, item_id: str, message: str) -> None:
		if not self.is_current(session_id):
			return
		item = self._session.get_item(item_id)
		if item is None or item.status in TERMINAL:
			return
		if item.status == "pending":
			self.update_item(session_id, item_id, status="parsing", progress=20)
		self.update_item(session_id, item_id, status="error", error=message)

	def set_status(self, session_id: str, status: str, **changes) -> bool:
		if not self.is_current(session_id):
			logger.debug("Dropping %s for stale session %s", status, session_id)
			return False
		current = self._session.status
		if status not in SESSION_TRANSITIONS[current]:
			raise InvalidTransition(f"session {current} -> {status}")
		self._session = self._session.model_copy(update={"status": status, **changes})
		return True

	def submit(self, items: List[AnalysisItem]) -> BulkSession:
		if not items:
			raise ValueError("Cannot start a session without items")
		# upload bytes stay with the run task, not the shared session
		session = BulkSession(id=uuid.uuid4().hex, items=[i.model_copy(update={"file": None}) for i in items])
		self._session = session
		logger.info("Session %s started with %d items", session.id, len(items))
		self._publish("session", message=f"Started analysis of {len(items)} startups")
		task = asyncio.get_running_loop().create_task(self.run(session.id, list(items)))
		self._tasks[session.id] = task
		task.add_done_callback(lambda t, sid=session.id: self._tasks.pop(sid, None))
		return self.current()

	def reset(self) -> None:
		if self._session is None:
			return
		logger.info("Session %s discarded", self._session.id)
		self._session = None
		self._publish("reset", message="Session discarded")

	async def wait(self, session_id: str = None) -> None:
		session_id = session_id or (self._session.id if self._session else None)
		task = self._tasks.get(session_id)
		if task:
			await task

	async def run(self, session_id: str, items: List[AnalysisItem]) -> None:
		services = self.services

		def worker(item: AnalysisItem):
			def update(**changes):
				self.update_item(session_id, item.id, **changes)
			return analyze_item(item, update, services)

		def settle(item: AnalysisItem, exc: BaseException):
			self.fail_item(session_id, item.id, f"Analysis did not finish: {exc}")

		await run_in_batches(items, worker, self.batch_size, settle)
		if not self.is_current(session_id):
			return
		for item in self._session.items:
			if item.status in IN_FLIGHT:
				self.fail_item(session_id, item.id, "Analysis did not finish")

		self.set_status(session_id, "ranking")
		self._publish("status", message="Ranking analyzed startups")

		def on_fallback(reason: str):
			if self.is_current(session_id):
				self._publish("warning", message="Could not generate rankings. Using score-based ranking instead.")

		ranking = await rank_items(self._session.items, services.rank, on_fallback)
		if not self.set_status(session_id, "complete", ranking=ranking, completed_at=utcnow()):
			return
		done = self._session.completed_count
		total = len(self._session.items)
		logger.info("Session %s complete: %d of %d analyzed", session_id, done, total)
		self._publish("complete", message=f"Analyzed {done} of {total} startups")
