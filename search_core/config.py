"""
search_core/config.py
---------------------
Runtime configuration.

Values come from, in increasing priority:
    1. field defaults below
    2. WINESEARCH_* environment variables (e.g. WINESEARCH_DEFAULT_TOP_K=5)
    3. an optional YAML file (config/search.yaml, or WINESEARCH_CONFIG_FILE)
"""

import os
from pathlib import Path

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ROOT = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = ROOT / "config" / "search.yaml"
DEFAULT_TOP_K = 10


class SearchSettings(BaseSettings):
    catalog_csv: str = str(ROOT / "data" / "df.csv")          # path or http(s) URL
    embeddings_json: str = str(ROOT / "data" / "wine_embeddings.json")
    embed_provider: str = "sentence-transformers"            # or "hash"
    embed_model: str = "sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2"
    hash_dimension: int = 384
    device: str = "auto"                                     # auto | cpu | cuda
    default_top_k: int = Field(DEFAULT_TOP_K, ge=1)
    fetch_timeout: float = 30.0
    warm_up_on_startup: bool = True                         # load the model before serving
    log_dir: str = str(ROOT / "logs")
    log_level: str = "INFO"
    event_log_enabled: bool = True

    model_config = SettingsConfigDict(env_prefix="WINESEARCH_")


def load_settings(path: str | Path | None = None) -> SearchSettings:
    """Build settings from env, then overlay the YAML file if one exists."""
    path = path or os.getenv("WINESEARCH_CONFIG_FILE") or DEFAULT_CONFIG_PATH
    path = Path(path)
    overrides = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            overrides = yaml.safe_load(f) or {}
        if not isinstance(overrides, dict):
            raise ValueError(f"{path} must contain a mapping of settings")
    return SearchSettings(**overrides)
