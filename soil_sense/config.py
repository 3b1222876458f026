"""Project configuration: storage, live feed, chat and API settings."""
import os
from pathlib import Path
from dataclasses import dataclass, field

# ─────────────────────────────────────────────────────────────────────────────
# PATHS
# ─────────────────────────────────────────────────────────────────────────────
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = BASE_DIR / "data"

# ─────────────────────────────────────────────────────────────────────────────
# LOGGING
# ─────────────────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# ─────────────────────────────────────────────────────────────────────────────
# CROPS
# ─────────────────────────────────────────────────────────────────────────────
DEFAULT_CROP = "rice"

# ─────────────────────────────────────────────────────────────────────────────
# STORAGE
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class StorageConfig:
    path: Path = field(
        default_factory=lambda: Path(os.getenv("SOILSENSE_STORE_PATH", str(DATA_DIR / "soilsense_store.json")))
    )
    history_key: str = "soil_history"
    crop_key: str = "soil_crop"
    max_history: int = 200
    seed_threshold: int = 40   # backfill only when history has <= this many entries
    seed_points: int = 121     # 60 hours at 30-minute spacing
    seed_spacing_minutes: int = 30

STORAGE = StorageConfig()

# ─────────────────────────────────────────────────────────────────────────────
# LIVE FEED
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class LiveFeedConfig:
    interval_ms: int = int(os.getenv("SOILSENSE_INTERVAL_MS", "5000"))
    poll_seconds: float = 0.1  # worker loop granularity

    @property
    def refresh_seconds(self) -> int:
        """Default dashboard auto-refresh, in whole seconds within 1-30."""
        return min(30, max(1, self.interval_ms // 1000))

LIVE_FEED = LiveFeedConfig()

# ─────────────────────────────────────────────────────────────────────────────
# CHAT
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class ChatConfig:
    api_url: str = "https://api.openai.com/v1/chat/completions"
    model: str = "gpt-3.5-turbo"
    api_key: str = os.getenv("OPENAI_API_KEY", "")
    key_store: str = "soilsense_openai_key"
    demo_store: str = "soilsense_demo_mode"
    max_history: int = 18      # messages sent as conversation context
    max_tokens: int = 600
    temperature: float = 0.7
    timeout: float = 30.0

CHAT = ChatConfig()

# ─────────────────────────────────────────────────────────────────────────────
# API CONFIG
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class APIConfig:
    host: str = os.getenv("SOILSENSE_HOST", "0.0.0.0")
    port: int = int(os.getenv("SOILSENSE_PORT", "8000"))
    cors_origins: list = field(default_factory=lambda: ["*"])

API = APIConfig()
