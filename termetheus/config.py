"""Configuration models using Pydantic for validation."""
import os
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PrometheusConfig(BaseModel):
    """Backend connection and query settings."""
    base_url: str
    query: str
    step: str = "1m"
    timeout_s: float = Field(default=10.0, gt=0)

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v):
        """Require an http(s) URL and drop trailing slashes."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must start with http:// or https://, got '{v}'")
        return v.rstrip("/")

    @field_validator('query')
    @classmethod
    def validate_query(cls, v):
        if not v.strip():
            raise ValueError("query must not be empty")
        return v


class UIConfig(BaseModel):
    """Chart and render loop settings."""
    tick_interval_ms: int = Field(default=250, gt=0)
    title: Optional[str] = None
    quit_key: str = "q"
    mouse_capture: bool = True

    @field_validator('quit_key')
    @classmethod
    def validate_quit_key(cls, v):
        if len(v) != 1:
            raise ValueError("quit_key must be a single character")
        return v

    @property
    def tick_interval_s(self) -> float:
        return self.tick_interval_ms / 1000.0


class GlobalConfig(BaseModel):
    """Global configuration settings."""
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Optional[str] = None
    metrics_port: Optional[int] = None


class Config(BaseModel):
    """Root configuration model."""
    model_config = ConfigDict(populate_by_name=True)

    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    prometheus: PrometheusConfig
    ui: UIConfig = Field(default_factory=UIConfig)

    def chart_title(self) -> str:
        return self.ui.title or self.prometheus.query


def load_config(base_url: str, query: str, config_path: Optional[str] = None) -> Config:
    """
    Build the configuration from CLI arguments and an optional YAML file.

    The URL and query given on the command line always win over the file.
    """
    import yaml

    raw_config = {}
    if config_path is not None:
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        if not isinstance(raw_config, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")

    raw_config.setdefault('prometheus', {})
    raw_config['prometheus']['base_url'] = base_url
    raw_config['prometheus']['query'] = query

    # Apply environment variable overrides
    if env_log_level := os.getenv('LOG_LEVEL'):
        raw_config.setdefault('global', {})
        raw_config['global']['log_level'] = env_log_level

    if env_log_file := os.getenv('TERMETHEUS_LOG_FILE'):
        raw_config.setdefault('global', {})
        raw_config['global']['log_file'] = env_log_file

    try:
        config = Config(**raw_config)
        return config
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")
