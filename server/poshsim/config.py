import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv


@dataclass(frozen=True)
class GenerationProfile:
    """Latency budget and cache preference for one deployment profile."""

    request_budget_seconds: float
    call_timeout_seconds: float
    witness_timeout_seconds: float
    cache_preference: float
    cold_cache_preference: float
    fallback_margin_seconds: float = 0.5


PROFILES = {
    # Serverless hosts kill the request around 10s.
    "serverless": GenerationProfile(
        request_budget_seconds=9.0,
        call_timeout_seconds=8.0,
        witness_timeout_seconds=3.0,
        cache_preference=0.7,
        cold_cache_preference=0.3,
    ),
    "default": GenerationProfile(
        request_budget_seconds=55.0,
        call_timeout_seconds=45.0,
        witness_timeout_seconds=15.0,
        cache_preference=0.0,
        cold_cache_preference=0.3,
    ),
}


@dataclass
class Settings:
    # Gemini API
    gemini_api_key: Optional[str]

    # Generation defaults
    model: str
    temperature: float
    max_tokens: int

    # Runtime
    deploy_profile: str
    profile: GenerationProfile

    # Case cache
    case_cache_path: str
    case_cache_capacity: int

    # Server
    port: int


# Global settings instance
_settings: Optional[Settings] = None


def load_settings() -> Settings:
    global _settings
    load_dotenv()

    deploy_profile = os.getenv("DEPLOY_PROFILE", "default").strip().lower()
    if deploy_profile not in PROFILES:
        print(f"[WARNING] Unknown DEPLOY_PROFILE '{deploy_profile}', using 'default'")
        deploy_profile = "default"

    api_key = os.getenv("GEMINI_API_KEY", "").strip().strip('"')
    if not api_key:
        print("[WARNING] GEMINI_API_KEY not set. Cases will come from the cache or the built-in template unless a key is supplied per request")

    cache_capacity = int(os.getenv("CASE_CACHE_CAPACITY", "10"))
    if cache_capacity < 1:
        print(f"[WARNING] CASE_CACHE_CAPACITY must be at least 1, got {cache_capacity}; using 10")
        cache_capacity = 10

    _settings = Settings(
        gemini_api_key=api_key or None,
        model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        temperature=float(os.getenv("GEMINI_TEMPERATURE", "0.8")),
        max_tokens=int(os.getenv("GEMINI_MAX_TOKENS", "4000")),
        deploy_profile=deploy_profile,
        profile=PROFILES[deploy_profile],
        case_cache_path=os.getenv("CASE_CACHE_PATH", os.path.join(os.getcwd(), "caseCache.json")),
        case_cache_capacity=cache_capacity,
        port=int(os.getenv("PORT", "8000")),
    )
    return _settings


def get_settings() -> Settings:
    """Get the loaded settings. Must call load_settings() first."""
    global _settings
    if _settings is None:
        raise RuntimeError("Settings not initialized. Call load_settings() first.")
    return _settings
