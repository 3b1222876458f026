"""FastAPI service exposing readings, history, recommendations and AgroBot."""
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .config import API, STORAGE, LOG_LEVEL, LOG_FORMAT
from .chat import AgroBot, ChatError
from .history import TimeRange
from .profiles import UnknownCropError, get_profile
from .service import SoilDataService
from .storage import JsonFileStore

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
log = logging.getLogger(__name__)

VERSION = "1.0.0"

app = FastAPI(
    title="SoilSense API",
    description="Simulated soil-sensor feed with crop-specific recommendations",
    version=VERSION,
)
app.add_middleware(CORSMiddleware, allow_origins=API.cors_origins, allow_methods=["*"], allow_headers=["*"])

# ─────────────────────────────────────────────────────────────────────────────
# MODELS
# ─────────────────────────────────────────────────────────────────────────────

class ReadingOut(BaseModel):
    moisture: Optional[float] = None
    ph: Optional[float] = None
    n: Optional[float] = None
    p: Optional[float] = None
    k: Optional[float] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    pump_on: bool = False
    last_watered: Optional[str] = None
    last_water_duration: int = 0
    timestamp: str
    crop: str


class RecommendationOut(BaseModel):
    severity: str
    icon: str
    category: str
    message: str
    param: str


class CropSelection(BaseModel):
    crop: str = Field(..., description="Crop identifier, e.g. 'rice'")


class BadgeOut(BaseModel):
    label: str
    tone: str


class LevelsResponse(BaseModel):
    n: Optional[BadgeOut] = None
    p: Optional[BadgeOut] = None
    k: Optional[BadgeOut] = None
    ph: Optional[BadgeOut] = None
    moisture: Optional[str] = None


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)


class ChatResponse(BaseModel):
    response: str
    model: str


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: str


# ─────────────────────────────────────────────────────────────────────────────
# DEPENDENCIES
# ─────────────────────────────────────────────────────────────────────────────

@lru_cache(maxsize=1)
def get_service() -> SoilDataService:
    service = SoilDataService(JsonFileStore(STORAGE.path))
    service.seed_history()
    return service


@lru_cache(maxsize=1)
def get_bot() -> AgroBot:
    return AgroBot(get_service().store)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


# ─────────────────────────────────────────────────────────────────────────────
# ENDPOINTS
# ─────────────────────────────────────────────────────────────────────────────

@app.get("/", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": VERSION, "timestamp": _now()}


@app.get("/api/v1/crops")
def list_crops(service: SoilDataService = Depends(get_service)):
    """List supported crops with their threshold profiles."""
    return {"crops": [p.to_dict() for p in service.profiles().values()]}


@app.get("/api/v1/crop")
def current_crop(service: SoilDataService = Depends(get_service)):
    return {"crop": service.get_current_crop()}


@app.put("/api/v1/crop")
def select_crop(body: CropSelection, service: SoilDataService = Depends(get_service)):
    try:
        crop = service.set_current_crop(body.crop)
    except UnknownCropError as e:
        raise HTTPException(404, str(e))
    return {"crop": crop}


@app.get("/api/v1/reading", response_model=ReadingOut)
def get_reading(service: SoilDataService = Depends(get_service)):
    """Latest stored reading, or the current sensor snapshot if history is empty."""
    reading = service.latest_reading() or service.get_reading()
    return reading.to_dict()


@app.post("/api/v1/reading/next", response_model=ReadingOut)
def next_reading(service: SoilDataService = Depends(get_service)):
    """Advance the simulation one tick and store the result."""
    return service.feed.tick().to_dict()


@app.get("/api/v1/history", response_model=List[ReadingOut])
def get_history(
    range: TimeRange = Query(TimeRange.ALL, description="daily | weekly | monthly | all"),
    service: SoilDataService = Depends(get_service),
):
    return [r.to_dict() for r in service.get_filtered_history(range)]


@app.get("/api/v1/recommendations", response_model=List[RecommendationOut])
def get_recommendations(crop: Optional[str] = None, service: SoilDataService = Depends(get_service)):
    reading = service.latest_reading() or service.get_reading()
    return [r.to_dict() for r in service.get_recommendations(reading, crop)]


@app.get("/api/v1/alerts", response_model=List[RecommendationOut])
def get_alerts(crop: Optional[str] = None, service: SoilDataService = Depends(get_service)):
    reading = service.latest_reading() or service.get_reading()
    return [r.to_dict() for r in service.get_alerts(reading, crop)]


@app.get("/api/v1/levels", response_model=LevelsResponse)
def get_levels(
    n: Optional[float] = Query(None, ge=0, le=100),
    p: Optional[float] = Query(None, ge=0, le=100),
    k: Optional[float] = Query(None, ge=0, le=100),
    ph: Optional[float] = Query(None, ge=0, le=14),
    moisture: Optional[float] = Query(None, ge=0, le=100),
    crop: Optional[str] = None,
    service: SoilDataService = Depends(get_service),
):
    """Display classifications for arbitrary values."""
    return {
        "n": service.npk_level(n)._asdict() if n is not None else None,
        "p": service.npk_level(p)._asdict() if p is not None else None,
        "k": service.npk_level(k)._asdict() if k is not None else None,
        "ph": service.ph_category(ph)._asdict() if ph is not None else None,
        "moisture": service.moisture_color(moisture, get_profile(crop or service.get_current_crop()))
        if moisture is not None else None,
    }


@app.post("/api/v1/chat", response_model=ChatResponse)
def chat(body: ChatRequest, bot: AgroBot = Depends(get_bot)):
    result = bot.chat(body.message)
    if not result["success"]:
        raise HTTPException(502, result["error"])
    return {"response": result["response"], "model": result["model"]}


def run():
    import uvicorn
    uvicorn.run("soil_sense.api:app", host=API.host, port=API.port)


if __name__ == "__main__":
    run()
