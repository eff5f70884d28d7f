"""
Shared data models: the per-port ScanResult and the ScanConfig the engine
consumes. Results are frozen once a worker builds them.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

FALLBACK_WORKERS = 100


class ScanConfig(BaseModel):
    timeout: float = Field(0.5, gt=0)
    workers: int = 500
    probe: bool = False
    header_scan_limit: int = Field(20, ge=1)

    @field_validator("workers")
    @classmethod
    def coerce_workers(cls, v: int) -> int:
        # non-positive means "pick something sane", not an error
        return v if v > 0 else FALLBACK_WORKERS

    @classmethod
    def from_settings(cls, settings, **overrides: Any) -> "ScanConfig":
        values = {
            "timeout": settings.timeout,
            "workers": settings.workers,
            "probe": settings.probe,
            "header_scan_limit": settings.header_scan_limit,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


class ScanResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str
    port: int = Field(ge=1, le=65535)
    open: bool
    latency: float = Field(ge=0, description="seconds spent in the connect attempt")
    service: Optional[str] = None
    banner: Optional[str] = None
    fingerprint: Optional[str] = None
    error: Optional[str] = None

    @field_validator("service", "banner", "fingerprint", "error", mode="before")
    @classmethod
    def empty_to_none(cls, v):
        return v or None

    @model_validator(mode="after")
    def check_state(self) -> "ScanResult":
        if self.open:
            if self.error:
                raise ValueError("open result must not carry an error")
        else:
            if not self.error:
                raise ValueError("closed result requires an error")
            if self.service or self.banner or self.fingerprint:
                raise ValueError("closed result cannot carry service details")
        return self

    @property
    def latency_ms(self) -> float:
        return round(self.latency * 1000.0, 3)

    def to_doc(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "open": self.open,
            "latency_ms": self.latency_ms,
        }
        for key in ("service", "banner", "fingerprint", "error"):
            value = getattr(self, key)
            if value:
                doc[key] = value
        return doc
