import json
import asyncio
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, UploadFile, File, Form, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from starlette.responses import JSONResponse
from typing import List, Optional

from config import AppConfig, AISettings, load_config, load_ai_settings, save_ai_settings
from schemas import FileHandle, SessionEvent, SubmitResponse, UrlImportResponse
from intake import normalize_intake
from excel_handler import parse_url_sheet, create_ranking_excel
from pipeline import BulkServices, build_services
from session import BulkSessionManager
from term_sheets import TermSheetTemplate, TermSheetVariables, TEMPLATE_LABELS, render_term_sheet
from logger import get_logger

logger = get_logger("api")

def session_listener(session_id: str, queue: asyncio.Queue):
	"""Subscriber for one stream: events of other sessions are skipped, resets always pass."""
	def on_event(evt: SessionEvent):
		if evt.type == "reset" or (evt.session is not None and evt.session.id == session_id):
			queue.put_nowait(evt.model_dump(mode="json"))
	return on_event

def create_app(config: Optional[AppConfig] = None, services: Optional[BulkServices] = None, settings: Optional[AISettings] = None) -> FastAPI:
	config = config or load_config()
	settings = settings or load_ai_settings(config.ai_settings_path)
	app = FastAPI(title="DealScope Bulk DD")
	app.add_middleware(
		CORSMiddleware,
		allow_origins=["*"],
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	app.state.config = config
	app.state.ai_settings = settings
	app.state.custom_services = services is not None
	app.state.manager = BulkSessionManager(services or build_services(config, settings), config.batch_size)

	@app.get("/")
	async def root():
		return {"status": "DealScope API Running", "version": "1.0"}

	@app.post("/bulk/submit")
	async def submit(request: Request, files: List[UploadFile] = File(default=[]), urls: str = Form(default="")):
		manager: BulkSessionManager = request.app.state.manager
		handles = [
			FileHandle(filename=f.filename or "deck.pdf", content_type=f.content_type or "", data=await f.read())
			for f in files
		]
		intake = normalize_intake(handles, urls, max_items=config.max_items)
		if not intake.items:
			return JSONResponse(status_code=400, content={"error": "Please add at least one pitch deck", "warnings": intake.warnings})
		session = manager.submit(intake.items)
		return SubmitResponse(session=session, warnings=intake.warnings).model_dump(mode="json")

	@app.post("/bulk/import-urls")
	async def import_urls(file: UploadFile):
		content = await file.read()
		try:
			urls, column, mapping = parse_url_sheet(content)
		except Exception as e:
			return JSONResponse(status_code=400, content={"error": f"Failed to parse file: {str(e)}"})
		if not urls:
			return JSONResponse(status_code=400, content={"error": "No deck URLs found in file. Please check the header row and URL column."})
		return UrlImportResponse(urls=urls, column=column, mapping=mapping).model_dump()

	@app.get("/bulk/session")
	async def get_session(request: Request):
		session = request.app.state.manager.current()
		if session is None:
			return JSONResponse(status_code=404, content={"error": "No analysis in progress."})
		return session.model_dump(mode="json")

	@app.get("/bulk/stream")
	async def stream(request: Request):
		manager: BulkSessionManager = request.app.state.manager
		session = manager.current()
		if session is None:
			return JSONResponse(status_code=404, content={"error": "No analysis in progress."})
		event_queue = asyncio.Queue()
		unsubscribe = manager.subscribe(session_listener(session.id, event_queue))

		async def sse_stream():
			try:
				yield f"data: {json.dumps({'type': 'session', 'session': session.model_dump(mode='json')})}\n\n"
				if session.status == "complete":
					return
				while True:
					try:
						evt = await asyncio.wait_for(event_queue.get(), timeout=60)
					except asyncio.TimeoutError:
						yield ": keep-alive\n\n"
						continue
					yield f"data: {json.dumps(evt)}\n\n"
					if evt["type"] in ("complete", "reset"):
						break
			finally:
				unsubscribe()

		headers = {
			"Cache-Control": "no-cache",
			"X-Accel-Buffering": "no"
		}
		return StreamingResponse(sse_stream(), media_type="text/event-stream", headers=headers)

	@app.post("/bulk/reset")
	async def reset(request: Request):
		request.app.state.manager.reset()
		return {"status": "reset"}

	@app.get("/bulk/download")
	async def download(request: Request):
		session = request.app.state.manager.current()
		if session is None or session.ranking is None:
			return JSONResponse(status_code=404, content={"error": "No rankings available. Please run an analysis first."})
		excel_bytes = create_ranking_excel(session)
		headers = {
			"Content-Disposition": "attachment; filename=DealScope_rankings.xlsx"
		}
		return Response(content=excel_bytes, media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", headers=headers)

	@app.get("/settings")
	async def get_settings(request: Request):
		return request.app.state.ai_settings.masked()

	@app.put("/settings")
	async def put_settings(request: Request, new_settings: AISettings):
		app_state = request.app.state
		if not new_settings.api_key and new_settings.provider == app_state.ai_settings.provider:
			# a blank key keeps the saved one
			new_settings.api_key = app_state.ai_settings.api_key
		save_ai_settings(config.ai_settings_path, new_settings)
		app_state.ai_settings = new_settings
		if not app_state.custom_services:
			app_state.manager.services = build_services(config, new_settings)
		return new_settings.masked()

	@app.get("/term-sheets/templates")
	async def list_templates():
		return [{"id": t.value, "label": TEMPLATE_LABELS[t]} for t in TermSheetTemplate]

	@app.post("/term-sheets/render")
	async def render(template: TermSheetTemplate, variables: TermSheetVariables):
		return {"template": template.value, "content": render_term_sheet(template, variables)}

	return app

app = create_app()

if __name__ == "__main__":
	import uvicorn
	uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
