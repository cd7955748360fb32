from typing import Optional

from fastapi import Request

from .config import Settings, get_settings
from .models.simulation import GenerationSettings
from .services.case_cache import CaseCache
from .services.simulation_orchestrator import SimulationOrchestrator

_case_cache: Optional[CaseCache] = None
_orchestrator: Optional[SimulationOrchestrator] = None


async def init_simulation_services(settings: Settings) -> None:
    """Create the process-wide case cache and orchestrator."""
    global _case_cache, _orchestrator
    _case_cache = CaseCache(settings.case_cache_path, capacity=settings.case_cache_capacity)
    await _case_cache.initialize()
    _orchestrator = SimulationOrchestrator(
        cache=_case_cache,
        profile=settings.profile,
        default_api_key=settings.gemini_api_key,
    )


def get_case_cache() -> CaseCache:
    if _case_cache is None:
        raise RuntimeError("Case cache not initialized. Call init_simulation_services() first.")
    return _case_cache


def get_orchestrator() -> SimulationOrchestrator:
    if _orchestrator is None:
        raise RuntimeError("Orchestrator not initialized. Call init_simulation_services() first.")
    return _orchestrator


def _cookie_float(request: Request, name: str, default: float) -> float:
    try:
        return float(request.cookies.get(name, default))
    except ValueError:
        return default


def _cookie_int(request: Request, name: str, default: int) -> int:
    try:
        return int(request.cookies.get(name, default))
    except ValueError:
        return default


def get_generation_settings(request: Request) -> GenerationSettings:
    """Per-request generator settings from cookies, falling back to server defaults.

    The API key cookie is optional; without it the orchestrator uses the
    server's GEMINI_API_KEY, and without that the cache or template.
    """
    settings = get_settings()
    api_key = (request.cookies.get("gemini_api_key") or "").strip()
    return GenerationSettings(
        api_key=api_key or None,
        model=request.cookies.get("gemini_model") or settings.model,
        temperature=_cookie_float(request, "gemini_temperature", settings.temperature),
        max_tokens=_cookie_int(request, "gemini_max_tokens", settings.max_tokens),
    )
