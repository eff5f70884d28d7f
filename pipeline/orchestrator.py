"""
Multi-host driver: scans hosts one after another with the worker pool,
aggregates the results and optionally ships them to Elasticsearch.
"""

import datetime as dt
import logging
from typing import Any, Dict, List, Optional, Sequence

from core.config import settings
from core.models import ScanConfig, ScanResult
from elk.adapter import ElasticsearchAdapter
from pipeline.aggregate import aggregate
from pipeline.engine import scan_host_ports

log = logging.getLogger(__name__)


class Orchestrator:
    def __init__(self, elk: Optional[ElasticsearchAdapter] = None) -> None:
        if elk is None and settings.elasticsearch_url:
            elk = ElasticsearchAdapter()
        self.elk = elk
        self.degraded = False

    def scan(
        self,
        hosts: Sequence[str],
        ports: Sequence[int],
        config: Optional[ScanConfig] = None,
        include_closed: bool = True,
        index: bool = False,
    ) -> List[ScanResult]:
        if not hosts:
            raise ValueError("host list is empty")
        if not ports:
            raise ValueError("port list is empty")
        config = config or ScanConfig.from_settings(settings)

        collected: List[ScanResult] = []
        for host in hosts:
            collected.extend(scan_host_ports(host, ports, config))
        results = aggregate(collected, include_closed=include_closed)
        log.info(
            "scan finished: %d hosts, %d ports, %d open",
            len(hosts),
            len(ports),
            sum(1 for r in collected if r.open),
        )

        if index:
            self._emit(results)
        return results

    def _emit(self, results: List[ScanResult]) -> None:
        if not self.elk:
            log.warning("indexing requested but PORTLENS_ELASTICSEARCH_URL is not set")
            self.degraded = True
            return
        if not results:
            return
        stamp = dt.datetime.now(dt.timezone.utc).isoformat()
        docs = [dict(r.to_doc(), timestamp=stamp) for r in results]
        try:
            self.elk.bulk_index(settings.results_index, docs)
            self.degraded = False
        except Exception as e:  # noqa: BLE001
            # results are still returned to the caller
            log.exception("ELK bulk_index failed | index=%s | err=%s", settings.results_index, e)
            self.degraded = True

    def stored_results(self, host: str) -> List[Dict[str, Any]]:
        if not self.elk:
            return []
        return self.elk.search_by_host(settings.results_index, host)

    def verify(self) -> Dict[str, bool]:
        configured = self.elk is not None
        return {
            "elk_configured": configured,
            "elk": self.elk.ping() if configured else False,
            "degraded": self.degraded,
        }
