import re
import uuid
from typing import List, Optional
from urllib.parse import urlparse

from schemas import AnalysisItem, FileHandle, IntakeResult
from logger import get_logger

logger = get_logger("intake")

PDF_MIME = "application/pdf"
GENERIC_MIMES = ("", "application/octet-stream", "binary/octet-stream")

def is_pdf(handle: FileHandle) -> bool:
	content_type = (handle.content_type or "").lower()
	if content_type == PDF_MIME:
		return True
	# some clients do not sniff the type; trust the extension only then
	return content_type in GENERIC_MIMES and handle.filename.lower().endswith(".pdf")

def split_urls(text: Optional[str]) -> List[str]:
	if not text:
		return []
	return [u.strip() for u in re.split(r"[\n,]", text) if u.strip()]

def is_valid_url(url: str) -> bool:
	try:
		parsed = urlparse(url)
	except ValueError:
		return False
	return parsed.scheme in ("http", "https") and bool(parsed.hostname)

def strip_pdf(name: str) -> str:
	return re.sub(r"\.pdf$", "", name, flags=re.IGNORECASE)

def name_from_url(url: str) -> str:
	parsed = urlparse(url)
	last = parsed.path.rstrip("/").split("/")[-1]
	return strip_pdf(last) or parsed.hostname

def new_item_id() -> str:
	return uuid.uuid4().hex

def normalize_intake(files: List[FileHandle], url_text: Optional[str] = None, existing_count: int = 0, max_items: int = 10) -> IntakeResult:
	warnings = []
	candidates = []
	rejected_files = [f.filename for f in files if not is_pdf(f)]
	if rejected_files:
		warnings.append(f"Only PDF files are accepted; skipped: {', '.join(rejected_files)}")
	for f in files:
		if is_pdf(f):
			candidates.append(AnalysisItem(
				id=new_item_id(),
				name=strip_pdf(f.filename),
				source_kind="file",
				source_ref=f.filename,
				file=f,
			))
	urls = split_urls(url_text)
	bad_urls = [u for u in urls if not is_valid_url(u)]
	if bad_urls:
		warnings.append(f"Skipped invalid URLs (HTTP/HTTPS only): {', '.join(bad_urls)}")
	for u in urls:
		if is_valid_url(u):
			candidates.append(AnalysisItem(
				id=new_item_id(),
				name=name_from_url(u),
				source_kind="url",
				source_ref=u,
			))
	remaining = max(max_items - existing_count, 0)
	if len(candidates) > remaining:
		warnings.append(f"Maximum {max_items} items allowed. Only first {remaining} added.")
	accepted = candidates[:remaining]
	for w in warnings:
		logger.warning(w)
	logger.info("Intake accepted %d of %d candidate items", len(accepted), len(candidates))
	return IntakeResult(items=accepted, warnings=warnings)
