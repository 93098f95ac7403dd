import re
import uuid
import asyncio
from pathlib import Path
from logger import get_logger

logger = get_logger("storage")

def safe_filename(filename: str) -> str:
	name = re.sub(r"[^A-Za-z0-9._-]", "_", Path(filename).name)
	return name or "deck.pdf"

class LocalDeckStorage:
	"""Keeps uploaded decks on disk so the extractor can read them back by path."""

	def __init__(self, root: Path):
		self.root = Path(root)

	def _write(self, filename: str, data: bytes) -> str:
		self.root.mkdir(parents=True, exist_ok=True)
		path = self.root / f"{uuid.uuid4().hex[:8]}_{safe_filename(filename)}"
		path.write_bytes(data)
		return str(path.resolve())

	async def put(self, filename: str, data: bytes) -> str:
		ref = await asyncio.to_thread(self._write, filename, data)
		logger.info("Stored %s (%d bytes) at %s", filename, len(data), ref)
		return ref
