"""
Worker pool for a single host: ports fan out over a fixed number of
threads through one job queue and fan back in through one result queue.
"""

import logging
import threading
import time
from typing import List, Sequence

from core.models import ScanConfig, ScanResult
from core.ports import MAX_PORT
from core.queue import ClosableQueue, ScanJob
from pipeline.aggregate import sort_results
from probers import l4_tcp

log = logging.getLogger(__name__)


def _scan_job(job: ScanJob, config: ScanConfig) -> ScanResult:
    start = time.perf_counter()
    try:
        return l4_tcp.scan_port(job.host, job.port, config)
    except Exception as exc:  # noqa: BLE001
        # every job must produce a result or the pool never drains
        log.exception("worker failed on %s:%s", job.host, job.port)
        return ScanResult(
            host=job.host,
            port=job.port,
            open=False,
            latency=time.perf_counter() - start,
            error=str(exc) or type(exc).__name__,
        )


def _worker(jobs: "ClosableQueue[ScanJob]", results: "ClosableQueue[ScanResult]", config: ScanConfig) -> None:
    for job in jobs:
        results.put(_scan_job(job, config))


def _check_ports(ports: Sequence[int]) -> None:
    if not ports:
        raise ValueError("port list is empty")
    bad = [p for p in ports if not 1 <= p <= MAX_PORT]
    if bad:
        raise ValueError(f"ports out of range 1-{MAX_PORT}: {bad[:5]}")


def scan_host_ports(host: str, ports: Sequence[int], config: ScanConfig) -> List[ScanResult]:
    """
    TCP connect scan of every port on host. Returns exactly one result per
    port, sorted by (host, port). Raises ValueError on an empty port list or
    a port outside 1-65535, before any worker starts.
    """
    _check_ports(ports)

    workers = min(config.workers, len(ports))
    jobs: "ClosableQueue[ScanJob]" = ClosableQueue(name=f"jobs[{host}]")
    results: "ClosableQueue[ScanResult]" = ClosableQueue(name=f"results[{host}]")

    pool = [
        threading.Thread(target=_worker, args=(jobs, results, config), name=f"scan-{host}-{i}", daemon=True)
        for i in range(workers)
    ]
    for t in pool:
        t.start()

    def feed() -> None:
        try:
            for port in ports:
                jobs.put(ScanJob(host, port))
            jobs.close()
            for t in pool:
                t.join()
        finally:
            results.close()

    started = time.perf_counter()
    log.debug("scanning %s: %d ports, %d workers", host, len(ports), workers)
    threading.Thread(target=feed, name=f"feed-{host}", daemon=True).start()

    out = list(results)
    log.debug("scanned %s in %.3fs", host, time.perf_counter() - started)
    return sort_results(out)
