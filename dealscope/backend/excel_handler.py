import io
import re
import csv
from typing import List, Dict, Optional, Tuple
import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import PatternFill, Font
from openpyxl.utils import get_column_letter
from schemas import BulkSession
from tools import score_band

# Keyword mapping for fuzzy column detection
FIELD_KEYWORDS = {
	"name": ["company name", "company", "startup name", "startup", "name", "organization"],
	"deck_url": ["pitch deck", "deck url", "deck link", "deck", "pitch", "pdf"],
	"website": ["website", "url", "web", "site", "homepage", "company url", "link"],
}

def normalize_col(col) -> str:
	return re.sub(r'[^a-z0-9 ]', '', str(col).lower().strip())

def detect_header_row(rows: List[List[str]]) -> int:
	# Scan first 10 rows for header keywords
	best_row = 0
	best_score = 0
	for i, row in enumerate(rows[:10]):
		score = 0
		for cell in row:
			cell_norm = normalize_col(cell)
			if not cell_norm:
				continue
			for keywords in FIELD_KEYWORDS.values():
				if any(normalize_col(kw) in cell_norm for kw in keywords):
					score += 1
		if score > best_score:
			best_score = score
			best_row = i
	return best_row

def find_column(header: List[str], keywords: List[str], taken: List[str]) -> Optional[str]:
	header_norm = [normalize_col(h) for h in header]
	# Priority 1: exact, 2: startswith, 3: contains
	for match in (lambda h, kw: h == kw, lambda h, kw: h.startswith(kw), lambda h, kw: kw in h):
		for kw in keywords:
			kw_norm = normalize_col(kw)
			for i, h in enumerate(header_norm):
				if h and header[i] not in taken and match(h, kw_norm):
					return header[i]
	return None

def detect_column_mapping(header: List[str]) -> Dict[str, Optional[str]]:
	mapping = {}
	for field, keywords in FIELD_KEYWORDS.items():
		mapping[field] = find_column(header, keywords, [c for c in mapping.values() if c])
	return mapping

def read_rows(file_content: bytes) -> List[List[str]]:
	if file_content[:4] == b'PK\x03\x04':  # XLSX magic bytes
		df = pd.read_excel(io.BytesIO(file_content), header=None, dtype=str).fillna("")
		return df.values.tolist()
	text = file_content.decode('utf-8-sig', errors='replace')
	return list(csv.reader(io.StringIO(text)))

def parse_url_sheet(file_content: bytes) -> Tuple[List[str], Optional[str], Dict[str, Optional[str]]]:
	rows = read_rows(file_content)
	if not rows:
		return [], None, {}
	header_idx = detect_header_row(rows)
	header = [str(h).strip() for h in rows[header_idx]]
	mapping = detect_column_mapping(header)
	column = mapping["deck_url"] or mapping["website"]
	if not column:
		return [], None, mapping
	col_idx = header.index(column)
	urls = []
	for row in rows[header_idx+1:]:
		if col_idx < len(row):
			value = str(row[col_idx]).strip()
			if value.startswith(("http://", "https://")):
				urls.append(value)
	return urls, column, mapping

def create_ranking_excel(session: BulkSession) -> bytes:
	wb = Workbook()
	ws = wb.active
	ws.title = "Bulk DD Rankings"
	header = [
		"Rank", "Company Name", "Overall (0-100)", "Team", "Market",
		"Product", "Moat", "Financials", "Band", "Summary"
	]
	ws.append(header)
	for cell in ws[1]:
		cell.font = Font(bold=True)
	for r in sorted(session.ranking.all_rankings, key=lambda r: r.rank):
		item = session.get_item(r.item_id)
		summary = item.report.summary if item and item.report else ""
		band, color = score_band(r.score)
		b = r.breakdown
		ws.append([
			r.rank, r.name, r.score, b.team, b.market,
			b.product, b.moat, b.financials, band, summary
		])
		fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
		for cell in ws[ws.max_row]:
			cell.fill = fill
	if session.ranking.top_entries:
		top = wb.create_sheet("Top Picks")
		top.append(["Rank", "Company Name", "Score", "Reasoning", "Strengths", "Risks"])
		for cell in top[1]:
			cell.font = Font(bold=True)
		for t in session.ranking.top_entries:
			top.append([t.rank, t.name, t.overall_score, t.reasoning, "; ".join(t.strengths), "; ".join(t.risks)])
		top.append([])
		top.append(["Investment thesis", session.ranking.investment_thesis])
		top.append(["Insights", session.ranking.comparison_insights])
	col_widths = [8, 25, 14, 8, 8, 8, 8, 11, 10, 60]
	for i, width in enumerate(col_widths, 1):
		ws.column_dimensions[get_column_letter(i)].width = width
	output = io.BytesIO()
	wb.save(output)
	return output.getvalue()
