import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import load_settings
from .dependencies import init_simulation_services

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    settings = load_settings()
    print(f"[PoshSim] Starting server on port {settings.port}")
    print(f"[PoshSim] Deploy profile: {settings.deploy_profile}")

    # Initialize case cache and orchestrator
    await init_simulation_services(settings)
    print(f"[PoshSim] Case cache at {settings.case_cache_path}")

    yield

    print("[PoshSim] Server shutdown complete")


app = FastAPI(
    title="POSH Simulation API",
    description="AI-generated workplace harassment investigation training cases",
    version="0.1.0",
    lifespan=lifespan,
)


# CORS - allow frontend dev servers (comma-separated override via CORS_ORIGINS)
load_dotenv()
_cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in _cors_origins.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Import and include routers
from .routes import simulation_router

app.include_router(simulation_router, prefix="/api/simulation", tags=["simulation"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "posh-simulation"}
