"""
Pydantic-based configuration for the CLI and API front ends.

Every knob can be set through a PORTLENS_* environment variable (or a .env
file). The scan engine itself never reads these; callers turn them into a
ScanConfig first.
"""

import re
from functools import lru_cache
from typing import Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DURATION = re.compile(r"^\s*(\d+(?:\.\d*)?|\.\d+)\s*(ns|us|µs|ms|s|m|h)?\s*$")
_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: Union[str, int, float]) -> float:
    """
    Parse "500ms", "1.5s", "2m" or a bare number of seconds into seconds.
    Raises ValueError for malformed or non-positive durations.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = float(value)
    else:
        match = _DURATION.match(str(value))
        if not match:
            raise ValueError(f"invalid duration: {value!r}")
        seconds = float(match.group(1)) * _UNITS[match.group(2) or "s"]
    if seconds <= 0:
        raise ValueError(f"duration must be positive: {value!r}")
    return seconds


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PORTLENS_", case_sensitive=False, env_file=".env")

    # Scan defaults
    timeout: float = Field(0.5, description="per-attempt dial/read/write budget in seconds")
    workers: int = Field(500, description="concurrent connect workers per host")
    probe: bool = Field(False, description="enable protocol fingerprinting")
    include_closed: bool = Field(False, description="keep closed ports in output")
    ports: str = Field("top:100", description="default port spec")

    # Prober knobs
    header_scan_limit: int = Field(20, ge=1, description="max HTTP header lines read after the status line")
    user_agent: str = Field("portlens/0.1", description="User-Agent sent by the HTTP probe")

    log_level: str = Field("WARNING")

    # Elasticsearch
    elasticsearch_url: Optional[str] = None
    elasticsearch_user: Optional[str] = None
    elasticsearch_pass: Optional[str] = None
    elasticsearch_api_key: Optional[str] = None
    elasticsearch_verify_certs: bool = True
    elasticsearch_ca_cert: Optional[str] = None
    results_index: str = "portlens-results"
    bulk_batch_size: int = Field(500, ge=1)

    @field_validator("timeout", mode="before")
    @classmethod
    def validate_timeout(cls, v):
        return parse_duration(v)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("log_level must be a standard logging level name")
        return v


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
