import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from roikit.utils.paths import data_dir

DEFAULT_ENV_PATH = Path("config/roikit/.env")
DEFAULT_DEBOUNCE_MS = 250


def _maybe_load_dotenv(path: Path = DEFAULT_ENV_PATH) -> None:
	# override=False: variables already in the process env win
	if path.exists():
		load_dotenv(path, override=False)


@dataclass
class Settings:
	store: str
	data_path: Path
	rest_url: str
	rest_key: str
	save_debounce_ms: int
	log_level: str

	@property
	def save_debounce_sec(self) -> float:
		return self.save_debounce_ms / 1000.0


def _int_env(name: str, default: int) -> int:
	raw = os.getenv(name, "").strip()
	if not raw:
		return default
	try:
		return max(0, int(raw))
	except ValueError:
		return default


def load_settings(env_path: Path = DEFAULT_ENV_PATH) -> Settings:
	"""Load roikit settings from env or optional .env file.
	Order of precedence: process env > .env file > defaults.
	"""
	_maybe_load_dotenv(env_path)
	data_path = os.getenv("ROIKIT_DATA_PATH", "").strip()
	return Settings(
		store=os.getenv("ROIKIT_STORE", "json").strip().lower() or "json",
		data_path=Path(data_path) if data_path else data_dir() / "store.json",
		rest_url=os.getenv("ROIKIT_REST_URL", "").strip(),
		rest_key=os.getenv("ROIKIT_REST_KEY", "").strip(),
		save_debounce_ms=_int_env("ROIKIT_SAVE_DEBOUNCE_MS", DEFAULT_DEBOUNCE_MS),
		log_level=os.getenv("ROIKIT_LOG_LEVEL", "INFO").strip().upper() or "INFO",
	)
