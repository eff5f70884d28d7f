import pytest

from core.models import ScanConfig, ScanResult
from elk import adapter as adapter_mod
from elk.adapter import ElasticsearchAdapter
from pipeline import orchestrator as orch_mod
from pipeline.orchestrator import Orchestrator


def fake_scan_host_ports(host, ports, config):
    out = []
    for port in reversed(list(ports)):
        if port % 2:
            out.append(ScanResult(host=host, port=port, open=False, latency=0.01, error="refused"))
        else:
            out.append(ScanResult(host=host, port=port, open=True, latency=0.01))
    return out


class RecordingElk:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def bulk_index(self, index, docs):
        if self.fail:
            raise RuntimeError("cluster unavailable")
        self.calls.append((index, list(docs)))
        return len(docs)

    def ping(self):
        return not self.fail

    def search_by_host(self, index, host, size=100):
        return [doc for _, docs in self.calls for doc in docs if doc["host"] == host]


@pytest.fixture(autouse=True)
def _fake_engine(monkeypatch):
    monkeypatch.setattr(orch_mod, "scan_host_ports", fake_scan_host_ports)


def test_scan_merges_hosts_in_order():
    orch = Orchestrator(elk=None)
    results = orch.scan(["b.example", "a.example"], [3, 2], ScanConfig())
    assert len(results) == 4
    assert [(r.host, r.port) for r in results] == [
        ("a.example", 2),
        ("a.example", 3),
        ("b.example", 2),
        ("b.example", 3),
    ]


def test_scan_can_drop_closed_ports():
    orch = Orchestrator(elk=None)
    results = orch.scan(["h"], [1, 2, 4], ScanConfig(), include_closed=False)
    assert [r.port for r in results] == [2, 4]


def test_scan_preconditions():
    orch = Orchestrator(elk=None)
    with pytest.raises(ValueError):
        orch.scan([], [80])
    with pytest.raises(ValueError):
        orch.scan(["h"], [])


def test_scan_indexes_results():
    elk = RecordingElk()
    orch = Orchestrator(elk=elk)
    orch.scan(["h"], [2, 3], ScanConfig(), index=True)
    (index, docs), = elk.calls
    assert index == orch_mod.settings.results_index
    assert [d["port"] for d in docs] == [2, 3]
    assert all("timestamp" in d for d in docs)
    assert orch.degraded is False
    assert [d["port"] for d in orch.stored_results("h")] == [2, 3]


def test_index_failure_marks_degraded_but_returns_results():
    orch = Orchestrator(elk=RecordingElk(fail=True))
    results = orch.scan(["h"], [2], ScanConfig(), index=True)
    assert len(results) == 1
    assert orch.degraded is True


def test_index_without_cluster_is_degraded():
    orch = Orchestrator(elk=None)
    orch.scan(["h"], [2], ScanConfig(), index=True)
    assert orch.degraded is True
    assert orch.stored_results("h") == []


def test_verify():
    assert Orchestrator(elk=None).verify() == {"elk_configured": False, "elk": False, "degraded": False}
    assert Orchestrator(elk=RecordingElk()).verify()["elk"] is True


class FakeClient:
    def __init__(self):
        self.searches = []

    def ping(self):
        return True

    def search(self, **kwargs):
        self.searches.append(kwargs)
        return {"hits": {"hits": [{"_source": {"host": "h", "port": 22}}]}}


def test_adapter_bulk_retries_then_succeeds(monkeypatch):
    attempts = []

    def flaky_bulk(client, actions, **kwargs):
        attempts.append(list(actions))
        if len(attempts) < 3:
            raise ConnectionError("temporary")
        return len(actions), 0

    monkeypatch.setattr(adapter_mod.helpers, "bulk", flaky_bulk)
    monkeypatch.setattr(adapter_mod.time, "sleep", lambda s: None)
    elk = ElasticsearchAdapter(client=FakeClient())
    assert elk.bulk_index("idx", [{"port": 1}, {"port": 2}]) == 2
    assert len(attempts) == 3
    assert attempts[-1][0] == {"_index": "idx", "_source": {"port": 1}}


def test_adapter_bulk_gives_up(monkeypatch):
    def down(client, actions, **kwargs):
        raise ConnectionError("down")

    monkeypatch.setattr(adapter_mod.helpers, "bulk", down)
    monkeypatch.setattr(adapter_mod.time, "sleep", lambda s: None)
    elk = ElasticsearchAdapter(client=FakeClient())
    with pytest.raises(ConnectionError):
        elk.bulk_index("idx", [{"port": 1}])


def test_adapter_batches(monkeypatch):
    sizes = []
    monkeypatch.setattr(adapter_mod.helpers, "bulk", lambda client, actions, **kw: sizes.append(len(actions)))
    elk = ElasticsearchAdapter(client=FakeClient())
    elk.batch_size = 2
    elk.bulk_index("idx", [{"port": p} for p in range(5)])
    assert sizes == [2, 2, 1]


def test_adapter_search_by_host():
    client = FakeClient()
    elk = ElasticsearchAdapter(client=client)
    assert elk.search_by_host("idx", "h") == [{"host": "h", "port": 22}]
    assert client.searches[0]["query"] == {"term": {"host.keyword": "h"}}
    assert elk.ping() is True


def test_adapter_requires_url(monkeypatch):
    monkeypatch.setattr(adapter_mod.settings, "elasticsearch_url", None)
    with pytest.raises(ValueError):
        ElasticsearchAdapter()
