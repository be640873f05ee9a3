"""Configuration models and loading utilities."""

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from croniter import croniter
from pydantic import BaseModel, Field, field_validator

CONFIG_ENV_VAR = "PARKALOT_CONFIG"


def resolve_env_var(v):
    """Resolve environment variable references like ${VAR_NAME}."""
    if isinstance(v, str) and v.startswith("${") and v.endswith("}"):
        env_var = v[2:-1]
        return os.environ.get(env_var, "")
    return v


class StoreConfig(BaseModel):
    """MongoDB location store configuration."""

    uri: str = Field(default="${MONGODB_URI}", validate_default=True)
    database: str = "ParkingDB"
    collection: str = "parkingLots"
    timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("uri", mode="before")
    @classmethod
    def resolve_uri(cls, v: str) -> str:
        return resolve_env_var(v)


class InferenceConfig(BaseModel):
    """Inference backend configuration."""

    backend: Literal["stub", "yolo", "hosted"] = "stub"
    confidence_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    free_classes: list[str] = ["empty", "free", "space-empty"]
    timeout_seconds: float = Field(default=30.0, gt=0)

    # yolo backend
    model_path: str = "models/parking-spaces.pt"
    model_confidence: float = 0.25  # Model-side floor, threshold applied later
    enhance_low_light: bool = True

    # hosted backend
    hosted_url: str = "https://detect.roboflow.com/parking-space/1"
    api_key: str = ""

    # stub backend
    stub_total_spaces: int = Field(default=20, ge=0)

    @field_validator("api_key", mode="before")
    @classmethod
    def resolve_api_key(cls, v: str) -> str:
        return resolve_env_var(v)


class ImagesConfig(BaseModel):
    """Where lot images are read from."""

    use_test_images: bool = False
    images_dir: str = "images"
    test_images_dir: str = "test-images"


class ScheduleConfig(BaseModel):
    """Cron cadences for the periodic tasks (None disables a task)."""

    refresh_cron: Optional[str] = "*/2 * * * *"  # Full inference pipeline
    heartbeat_cron: Optional[str] = "*/30 * * * *"  # Timestamp-only touch

    @field_validator("refresh_cron", "heartbeat_cron")
    @classmethod
    def validate_cron(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not croniter.is_valid(v):
            raise ValueError(f"Invalid cron expression: {v!r}")
        return v


class APIConfig(BaseModel):
    """API server configuration."""

    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = [
        "https://parkalot-frontend.vercel.app",
        "http://localhost:3001",
    ]


class AppConfig(BaseModel):
    """Main application configuration."""

    store: StoreConfig = Field(default_factory=StoreConfig)  # Resolves env at load time
    inference: InferenceConfig = InferenceConfig()
    images: ImagesConfig = ImagesConfig()
    schedule: ScheduleConfig = ScheduleConfig()
    api: APIConfig = APIConfig()


def load_config(path: str | Path) -> AppConfig:
    """
    Load configuration from a YAML file.

    Args:
        path: Path to the configuration file

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    config_path = Path(path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    return AppConfig(**data)


def get_config_path() -> Path:
    """Get the default configuration file path."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    # Check for config in current directory first
    local_config = Path("config/config.yaml")
    if local_config.exists():
        return local_config

    # Check for config in parent directory (for Docker)
    parent_config = Path("/app/config/config.yaml")
    if parent_config.exists():
        return parent_config

    return local_config  # Return default even if doesn't exist
