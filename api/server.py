"""
FastAPI front end for running scans and reading back indexed results
without exposing Elasticsearch directly.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from core.config import parse_duration, settings
from core.models import ScanConfig
from core.ports import parse_ports
from core.targets import expand_hosts
from pipeline.orchestrator import Orchestrator

log = logging.getLogger(__name__)

app = FastAPI(title="portlens API", version="0.1")
orch = Orchestrator()


class ScanPayload(BaseModel):
    hosts: Union[str, List[str]]
    ports: str = settings.ports
    timeout: Optional[str] = None
    workers: Optional[int] = None
    probe: Optional[bool] = None
    include_closed: bool = False
    index: bool = False


@app.post("/api/scan")
def api_scan(payload: ScanPayload):
    try:
        spec = payload.hosts if isinstance(payload.hosts, str) else ",".join(payload.hosts)
        hosts = expand_hosts(spec)
        ports = parse_ports(payload.ports)
        config = ScanConfig.from_settings(
            settings,
            timeout=parse_duration(payload.timeout) if payload.timeout else None,
            workers=payload.workers,
            probe=payload.probe,
        )
        results = orch.scan(hosts, ports, config, include_closed=payload.include_closed, index=payload.index)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:  # noqa: BLE001
        log.exception("scan failed")
        raise HTTPException(status_code=500, detail="scan failed") from exc
    return {"results": [r.to_doc() for r in results], "degraded": orch.degraded}


@app.get("/api/results")
def api_results(host: str = Query(...)):
    try:
        return {"results": orch.stored_results(host)}
    except Exception as exc:  # noqa: BLE001
        log.exception("results lookup failed")
        raise HTTPException(status_code=500, detail="results lookup failed") from exc


@app.get("/api/health")
def api_health():
    try:
        return orch.verify()
    except Exception as exc:  # noqa: BLE001
        log.exception("health check failed")
        raise HTTPException(status_code=500, detail="health check failed") from exc
