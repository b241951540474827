"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

PRODUCTION_ENVS = {"production", "prod"}
DEV_ENRICHMENT_BUDGET_SECONDS = 60.0
PROD_ENRICHMENT_BUDGET_SECONDS = 20.0


class EnrichmentMode(str, Enum):
    FAST = "fast"
    COMPREHENSIVE = "comprehensive"


@dataclass(frozen=True)
class Settings:
    google_api_key: str
    database_url: str
    worker_port: int = 9000
    max_pages: int = 3
    app_env: str = "development"
    enrichment_mode: EnrichmentMode = EnrichmentMode.COMPREHENSIVE
    enrichment_budget_seconds: float = DEV_ENRICHMENT_BUDGET_SECONDS
    cache_freshness_hours: float = 24.0
    cache_result_limit: int = 500
    companies_api_key: str = ""
    clearbit_api_key: str = ""
    verifik_api_key: str = ""
    default_phone_region: Optional[str] = "US"
    db_pool_min: int = 1
    db_pool_max: int = 5

    @property
    def is_production(self) -> bool:
        return self.app_env in PRODUCTION_ENVS


def _parse_mode(raw: Optional[str], app_env: str) -> EnrichmentMode:
    if raw:
        try:
            return EnrichmentMode(raw.strip().lower())
        except ValueError:
            logger.warning("Unknown ENRICHMENT_MODE=%s; falling back to environment default", raw)
    if app_env in PRODUCTION_ENVS:
        return EnrichmentMode.FAST
    return EnrichmentMode.COMPREHENSIVE


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    google_api_key = os.getenv("GOOGLE_API_KEY", "")
    database_url = os.getenv("DATABASE_URL", "")
    worker_port = int(os.getenv("WORKER_PORT", "9000"))
    max_pages = int(os.getenv("WORKER_MAX_PAGES", "3"))
    app_env = os.getenv("APP_ENV", "development").strip().lower()
    enrichment_mode = _parse_mode(os.getenv("ENRICHMENT_MODE"), app_env)
    default_budget = PROD_ENRICHMENT_BUDGET_SECONDS if app_env in PRODUCTION_ENVS else DEV_ENRICHMENT_BUDGET_SECONDS
    enrichment_budget_seconds = float(os.getenv("ENRICHMENT_BUDGET_SECONDS", str(default_budget)))
    cache_freshness_hours = float(os.getenv("CACHE_FRESHNESS_HOURS", "24"))
    cache_result_limit = int(os.getenv("CACHE_RESULT_LIMIT", "500"))
    default_phone_region_raw = os.getenv("DEFAULT_PHONE_REGION", "US")
    default_phone_region = default_phone_region_raw.strip().upper() if default_phone_region_raw else None

    if not database_url:
        logger.warning("DATABASE_URL is not set; database operations will fail.")
    if not google_api_key:
        logger.warning("GOOGLE_API_KEY is not configured; Google Places requests will fail.")

    optional_keys = {
        "COMPANIES_API_KEY": os.getenv("COMPANIES_API_KEY", ""),
        "CLEARBIT_API_KEY": os.getenv("CLEARBIT_API_KEY", ""),
        "VERIFIK_API_KEY": os.getenv("VERIFIK_API_KEY", ""),
    }
    for name, value in optional_keys.items():
        if not value:
            logger.debug("%s is not configured; that enrichment source is disabled.", name)

    return Settings(
        google_api_key=google_api_key,
        database_url=database_url,
        worker_port=worker_port,
        max_pages=max_pages,
        app_env=app_env,
        enrichment_mode=enrichment_mode,
        enrichment_budget_seconds=enrichment_budget_seconds,
        cache_freshness_hours=cache_freshness_hours,
        cache_result_limit=cache_result_limit,
        companies_api_key=optional_keys["COMPANIES_API_KEY"],
        clearbit_api_key=optional_keys["CLEARBIT_API_KEY"],
        verifik_api_key=optional_keys["VERIFIK_API_KEY"],
        default_phone_region=default_phone_region,
        db_pool_min=int(os.getenv("DB_POOL_MIN", "1")),
        db_pool_max=int(os.getenv("DB_POOL_MAX", "5")),
    )
