"""
Elasticsearch adapter for bulk writes of scan results and simple lookups.
Uses the official client; retries/backoff stay minimal.
"""

from __future__ import annotations

import random
import time
from typing import Dict, Iterable, Iterator, List

from elasticsearch import Elasticsearch, helpers

from core.config import settings

MAX_ATTEMPTS = 3
BACKOFF_BASE_S = 1.0


def _chunks(seq: List[Dict], size: int) -> Iterator[List[Dict]]:
    for i in range(0, len(seq), size):
        yield seq[i : i + size]


class ElasticsearchAdapter:
    def __init__(self, client: Elasticsearch | None = None):
        if client is None:
            client = Elasticsearch(**self._client_args())
        self.client = client
        self.batch_size = settings.bulk_batch_size

    @staticmethod
    def _client_args() -> Dict:
        if not settings.elasticsearch_url:
            raise ValueError("PORTLENS_ELASTICSEARCH_URL is required for ElasticsearchAdapter")
        args: Dict = {
            "hosts": [settings.elasticsearch_url],
            "verify_certs": settings.elasticsearch_verify_certs,
        }
        if settings.elasticsearch_api_key:
            args["api_key"] = settings.elasticsearch_api_key
        elif settings.elasticsearch_user and settings.elasticsearch_pass:
            args["basic_auth"] = (settings.elasticsearch_user, settings.elasticsearch_pass)
        if settings.elasticsearch_ca_cert:
            args["ca_certs"] = settings.elasticsearch_ca_cert
        return args

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except Exception:  # noqa: BLE001
            return False

    def bulk_index(self, index: str, docs: Iterable[Dict]) -> int:
        """Index docs in batches; returns how many were sent. Raises after the last failed attempt."""
        doc_list = list(docs)
        for chunk in _chunks(doc_list, self.batch_size):
            actions = [{"_index": index, "_source": doc} for doc in chunk]
            for attempt in range(1, MAX_ATTEMPTS + 1):
                try:
                    helpers.bulk(
                        self.client,
                        actions,
                        stats_only=True,
                        request_timeout=30,
                        raise_on_error=True,
                        max_retries=0,
                    )
                    break
                except Exception:  # noqa: BLE001
                    if attempt >= MAX_ATTEMPTS:
                        raise
                    time.sleep(BACKOFF_BASE_S * (2 ** (attempt - 1)) + random.random())
        return len(doc_list)

    def search_by_host(self, index: str, host: str, size: int = 100) -> List[Dict]:
        try:
            res = self.client.search(
                index=index,
                size=size,
                query={"term": {"host.keyword": host}},
                sort=[{"port": {"order": "asc"}}],
            )
        except Exception:  # noqa: BLE001
            return []
        hits = res.get("hits", {}).get("hits", [])
        return [h.get("_source", {}) for h in hits]
