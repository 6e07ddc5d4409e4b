from __future__ import annotations
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional, List
from dotenv import load_dotenv
load_dotenv()  # populates os.environ from .env


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Client side: where the persistence API lives
    inventory_api_url: str = Field("http://127.0.0.1:8000")
    request_timeout_seconds: float = Field(10.0, gt=0)

    # LLM (optional; intake endpoints fall back when missing)
    openai_api_key: Optional[str] = Field(None)
    openai_model_ocr: str = Field("gpt-4o-mini")
    openai_model_recipes: str = Field("gpt-4.1-mini")

    # Barcode lookup
    openfoodfacts_url: str = Field("https://world.openfoodfacts.org")

    # Storage
    data_dir: str = Field("data")
    ingredients_file: str = Field("data/ingredients.json")
    events_file: str = Field("data/inventory_log.jsonl")

    # Logging
    log_level: str = Field("INFO")

    cors_allow_origins: List[str] = Field(default_factory=lambda: ["http://127.0.0.1:3000"])
