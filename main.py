import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import close_geocoding_service, get_geocoding_service
from api.routes import geocoding
from core.config import settings
from services.geocoding import GeocodingError

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

# Set specific log levels
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)  # Reduce noise from access logs
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fail fast on bad configuration before serving traffic
    settings.load_file().validate()
    service = get_geocoding_service()
    await service.start()
    yield
    await close_geocoding_service()


app = FastAPI(
    title="Geocoding Gateway",
    description="Address geocoding over pluggable Nominatim / Pelias backends",
    version=settings.VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Origin", "Content-Type", "Accept"],
    max_age=12 * 3600,
)

# Include routers
app.include_router(geocoding.router)

# Upstream failures become 429 / 502 / 504 with the GeocodeResponse body
app.add_exception_handler(GeocodingError, geocoding.geocoding_error_handler)


@app.get("/")
async def root():
    return {"message": "Geocoding Gateway", "status": "running"}


@app.get("/health")
async def health():
    return {"status": "healthy", "timestamp": int(time.time())}
