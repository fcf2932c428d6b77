from __future__ import annotations
from pathlib import Path
from typing import Literal, Optional
import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
from src.utils.logger import get_logger

logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "context-engine" / "retrieval.yaml"


class RetrievalConfig(BaseModel):
    """Ranking and selection tunables. Defaults match production behaviour."""

    brand: str = "vitamix"

    # Candidate fetch
    max_top_k: int = 50
    dietary_top_k_multiplier: int = 2

    # Freshness decay
    freshness_horizon_days: float = 600.0
    freshness_floor: float = 0.85

    # Boosts and penalties
    boost_per_term: float = 0.15
    max_boost: float = 0.6
    conflict_penalty: float = 0.7

    # Deduplication
    similarity_threshold: float = 0.8
    diversity_penalty: float = 0.1

    # Diversity
    max_per_source: int = 2
    max_per_category: int = 3
    min_results: int = 5
    diversity_min_input: int = 3

    # Augmentation
    augment_max_tokens: int = 6

    # Embedding cache
    embedding_ttl_seconds: int = 86400

    # Optional token budget for the assembled context (~4 chars per token)
    max_context_tokens: Optional[int] = Field(default=None, gt=0)


class EngineSettings(BaseSettings):
    """Process-level settings for the CLI and service wiring."""

    embedding_url: str = "http://127.0.0.1:8787/ai"
    embedding_model: str = "@cf/baai/bge-base-en-v1.5"
    index_url: str = "http://127.0.0.1:8787/vectorize"
    api_key: Optional[str] = None  # Bearer token for both services (env: CONTEXT_ENGINE_API_KEY)
    timeout_seconds: float = 10.0
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    config: Optional[str] = None  # Path to retrieval YAML (env: CONTEXT_ENGINE_CONFIG)

    model_config = SettingsConfigDict(env_prefix="CONTEXT_ENGINE_")

    @property
    def config_path(self) -> Path:
        return Path(self.config) if self.config else DEFAULT_CONFIG_PATH


def load_config(path: Path) -> RetrievalConfig:
    """Load YAML config from path. Returns defaults if file doesn't exist or is invalid."""
    if not path.exists():
        return RetrievalConfig()
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return RetrievalConfig.model_validate(raw)
    except yaml.YAMLError as e:
        logger.error(f"❌ Invalid YAML in {path}: {e}")
        return RetrievalConfig()
    except (ValidationError, TypeError, ValueError) as e:
        logger.error(f"❌ Invalid retrieval config at {path}: {e}")
        return RetrievalConfig()
    except OSError as e:
        logger.error(f"❌ Could not read retrieval config from {path}: {e}")
        return RetrievalConfig()


def save_config(config: RetrievalConfig, path: Path) -> None:
    """Save config to YAML file, creating parent dirs as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(
            config.model_dump(exclude_none=False),
            f,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
