# File: /docview/core/config.py | Version: 1.3 | Title: Central App Settings (Pydantic v2)
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # --- Database (reference API backing store) ---
    DATABASE_URL: str = "sqlite:///./docview.db"

    # --- Client facade ---
    API_BASE_URL: str = "http://localhost:8000"
    API_TIMEOUT_SECONDS: float = 10.0

    # --- Record listing ---
    DEFAULT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 500

    # None means every module in docview.core.modules.MODULES
    ENABLED_MODULES: Optional[List[str]] = None

    # --- API behavior toggles ---
    ENABLE_STD_ERRORS: bool = True  # envelope-shaped error responses

    # v2-style config
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
