"""Configuration models and loading."""

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

CONFIG_DIR = Path.home() / ".config" / "metrics-fanout-proxy"
CONFIG_FILE = CONFIG_DIR / "config.json"


class ExporterSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=9094, ge=0, le=65535)
    fetch_timeout: float = Field(default=0.1, gt=0)
    shutdown_grace_period: float = Field(default=5.0, gt=0)


class Config(BaseModel):
    exporter: ExporterSettings = Field(default_factory=ExporterSettings)
    upstreams: dict[str, str] = Field(
        default_factory=lambda: {
            "service1": "http://service1.example.com/metrics",
            "service2": "http://service2.example.com/metrics",
        }
    )

    @field_validator("upstreams")
    @classmethod
    def _non_empty_urls(cls, upstreams: dict[str, str]) -> dict[str, str]:
        for name, url in upstreams.items():
            if not name or not url.strip():
                raise ValueError(f"upstream {name!r} needs a name and a URL")
        return upstreams


def load_config(config_file: Path = CONFIG_FILE) -> Config:
    """Load configuration from JSON file, creating default if needed."""
    if not config_file.exists():
        config_file.parent.mkdir(parents=True, exist_ok=True)
        default = Config()
        config_file.write_text(default.model_dump_json(indent=2))
        return default

    try:
        data = json.loads(config_file.read_text())
        return Config.model_validate(data)
    except (json.JSONDecodeError, ValidationError):
        # Backup corrupted config and recreate default
        backup = config_file.with_suffix(".json.bak")
        config_file.rename(backup)
        default = Config()
        config_file.write_text(default.model_dump_json(indent=2))
        return default
