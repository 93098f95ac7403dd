"""Pitch deck text extraction from URLs and stored uploads."""

import re
import asyncio
import ipaddress
from pathlib import Path
from urllib.parse import urlparse

import fitz  # PyMuPDF
import httpx
from bs4 import BeautifulSoup

from logger import get_logger

logger = get_logger("extraction")

DEFAULT_TIMEOUT = 30.0
DEFAULT_USER_AGENT = (
	"Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
	"AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
BLOCKED_HOSTS = ("localhost", "localhost.localdomain")
MAX_REDIRECTS = 5

class ExtractionError(Exception):
	pass

def is_internal_ip(host: str) -> bool:
	try:
		ip = ipaddress.ip_address(host)
	except ValueError:
		return False
	return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_unspecified or ip.is_reserved or ip.is_multicast

def check_public_url(url: str) -> None:
	parsed = urlparse(url)
	if parsed.scheme not in ("http", "https"):
		raise ExtractionError("Only HTTP/HTTPS URLs are allowed")
	host = (parsed.hostname or "").lower()
	if not host or host in BLOCKED_HOSTS or host.endswith(".localhost") or is_internal_ip(host):
		raise ExtractionError(f"Refusing to fetch internal address: {host or url}")

def pdf_text(data: bytes) -> str:
	with fitz.open(stream=data, filetype="pdf") as doc:
		parts = [page.get_text() for page in doc]
	return "\n\n".join(p for p in parts if p.strip())

def html_text(html: str) -> str:
	soup = BeautifulSoup(html, "html.parser")
	for tag in soup(["script", "style", "noscript"]):
		tag.decompose()
	text = soup.get_text(separator=" ")
	return re.sub(r"\s+", " ", text).strip()

def looks_like_pdf(content_type: str, data: bytes, url: str) -> bool:
	return "pdf" in content_type or data[:5] == b"%PDF-" or urlparse(url).path.lower().endswith(".pdf")

class ContentExtractor:
	def __init__(self, timeout: float = DEFAULT_TIMEOUT, client: httpx.AsyncClient = None):
		self.timeout = timeout
		self._client = client

	async def _get(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
		headers = {"User-Agent": DEFAULT_USER_AGENT}
		for _ in range(MAX_REDIRECTS + 1):
			check_public_url(url)
			response = await client.get(url, headers=headers, follow_redirects=False)
			if not response.is_redirect:
				return response
			url = str(response.url.join(response.headers["location"]))
			logger.debug("Following redirect to %s", url)
		raise ExtractionError(f"Too many redirects fetching {url}")

	async def _fetch(self, url: str) -> httpx.Response:
		if self._client is not None:
			return await self._get(self._client, url)
		async with httpx.AsyncClient(timeout=self.timeout) as client:
			return await self._get(client, url)

	async def extract_url(self, url: str) -> str:
		try:
			response = await self._fetch(url)
			response.raise_for_status()
		except httpx.HTTPError as e:
			raise ExtractionError(f"Failed to fetch {url}: {e}") from e
		content_type = response.headers.get("content-type", "").lower()
		if looks_like_pdf(content_type, response.content, str(response.url)):
			return await asyncio.to_thread(pdf_text, response.content)
		return html_text(response.text)

	async def extract_file(self, ref: str) -> str:
		path = Path(ref)
		if not path.is_file():
			raise ExtractionError(f"Stored deck not found: {ref}")
		data = await asyncio.to_thread(path.read_bytes)
		try:
			return await asyncio.to_thread(pdf_text, data)
		except (RuntimeError, ValueError) as e:
			# fitz raises FileDataError (a RuntimeError) on broken PDFs
			raise ExtractionError(f"Could not read PDF {path.name}: {e}") from e

	async def extract(self, ref: str) -> str:
		if ref.startswith(("http://", "https://")):
			text = await self.extract_url(ref)
		else:
			text = await self.extract_file(ref)
		logger.info("Extracted %d chars from %s", len(text), ref)
		return text
