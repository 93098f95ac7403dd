import os
import json
from pathlib import Path
from typing import Optional, Literal
from dotenv import load_dotenv
load_dotenv(override=False)

from pydantic import BaseModel, Field, ValidationError
from logger import get_logger

logger = get_logger("config")

Provider = Literal["openai", "anthropic", "openrouter"]

# Provider -> (env var holding the key, default model)
PROVIDER_DEFAULTS = {
	"openai": ("OPENAI_API_KEY", "gpt-4o-mini"),
	"anthropic": ("ANTHROPIC_API_KEY", "claude-3-5-haiku-20241022"),
	"openrouter": ("OPENROUTER_API_KEY", "google/gemini-2.5-flash"),
}

def _env(name: str, default: Optional[str] = None) -> Optional[str]:
	v = os.getenv(name)
	return v if v not in (None, "", "null", "None") else default

class AppConfig(BaseModel):
	max_items: int = Field(default=10, ge=1)
	batch_size: int = Field(default=3, ge=1)
	content_limit: int = Field(default=10000, ge=0)
	storage_dir: Path = Path("storage")
	ai_settings_path: Path = Path("ai_settings.json")
	extract_timeout: float = 30.0

class AISettings(BaseModel):
	provider: Provider = "openai"
	api_key: Optional[str] = None
	model: Optional[str] = None

	def resolved_key(self) -> Optional[str]:
		return self.api_key or _env(PROVIDER_DEFAULTS[self.provider][0])

	def resolved_model(self) -> str:
		return self.model or PROVIDER_DEFAULTS[self.provider][1]

	def masked(self) -> dict:
		key = self.api_key
		return {
			"provider": self.provider,
			"model": self.resolved_model(),
			"api_key": f"...{key[-4:]}" if key else None,
			"connected": bool(self.resolved_key()),
		}

def load_config() -> AppConfig:
	return AppConfig(
		max_items=int(_env("MAX_ITEMS", "10")),
		batch_size=int(_env("BATCH_SIZE", "3")),
		content_limit=int(_env("CONTENT_LIMIT", "10000")),
		storage_dir=Path(_env("STORAGE_DIR", "storage")),
		ai_settings_path=Path(_env("AI_SETTINGS_PATH", "ai_settings.json")),
		extract_timeout=float(_env("EXTRACT_TIMEOUT", "30")),
	)

def load_ai_settings(path: Path) -> AISettings:
	if not path.exists():
		return AISettings(provider=_env("AI_PROVIDER", "openai"))
	try:
		return AISettings(**json.loads(path.read_text()))
	except (json.JSONDecodeError, ValidationError) as e:
		logger.warning("Ignoring unreadable AI settings at %s: %s", path, e)
		return AISettings()

def save_ai_settings(path: Path, settings: AISettings) -> None:
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_text(json.dumps(settings.model_dump(), indent=2))
	logger.info("Saved AI settings (provider=%s)", settings.provider)
