"""Tests for the discovery control-plane client."""

import pytest

from shilp import DiscoveryClient, ReplicaType, SyncStatus, ValidationError

DISCOVERY_URL = "http://discovery.test"


@pytest.fixture
def discovery(session):
    with DiscoveryClient(DISCOVERY_URL, timeout=3.0, session=session) as client:
        yield client


def test_get_shilp_stats(stub, discovery):
    stub.add("GET", "/control/shilp/stats", json={
        "registry": {
            "write_replica": {"id": "w1", "address": "10.0.0.1:3000", "is_healthy": True},
            "read_replicas": [
                {"id": "r1", "address": "10.0.0.2:3000", "is_healthy": True, "is_syncing": True},
            ],
            "available_count": 1,
            "total_count": 2,
        },
        "proxy": {"active_proxies": 3, "targets": ["10.0.0.2:3000"]},
    })

    stats = discovery.get_shilp_stats("acct")

    assert stats.registry.write_replica.id == "w1"
    assert stats.registry.read_replicas[0].is_syncing
    assert stats.registry.available_count == 1
    assert stats.proxy.active_proxies == 3
    assert stub.last.params == {"account_id": "acct"}


def test_stats_requires_account(discovery):
    with pytest.raises(ValidationError):
        discovery.get_shilp_stats("")


def test_update_sync_status(stub, discovery):
    stub.add("POST", "/control/shilp/sync-status", json={"success": True})

    discovery.update_shilp_sync_status("acct", "10.0.0.2:3000", SyncStatus.SYNCING)

    assert stub.last.json() == {"account_id": "acct", "address": "10.0.0.2:3000", "status": "syncing"}


def test_invalid_sync_status(stub, discovery):
    with pytest.raises(ValidationError):
        discovery.update_shilp_sync_status("acct", "addr", "paused")
    assert stub.calls == []


def test_single_node_registers_as_read_then_write(stub, discovery):
    stub.add("POST", "/control/shilp/register", json={"success": True}, repeat=True)

    results = discovery.register_shilp_service("acct", "10.0.0.5:3000", "node-1", ReplicaType.SINGLE_NODE)

    assert len(results) == 2
    assert [c.json() for c in stub.calls] == [
        {"account_id": "acct", "address": "10.0.0.5:3000", "id": "node-1", "is_read": True, "is_write": False},
        {"account_id": "acct", "address": "10.0.0.5:3000", "id": "node-1", "is_read": False, "is_write": True},
    ]


@pytest.mark.parametrize("replica_type,is_read,is_write", [
    (ReplicaType.READ_REPLICA, True, False),
    (ReplicaType.WRITE_REPLICA, False, True),
])
def test_register_single_role(stub, discovery, replica_type, is_read, is_write):
    stub.add("POST", "/control/shilp/register", json={"success": True})

    results = discovery.register_shilp_service("acct", "addr", "node-1", replica_type)

    assert len(results) == 1
    body = stub.last.json()
    assert (body["is_read"], body["is_write"]) == (is_read, is_write)


def test_unregister_single_node(stub, discovery):
    stub.add("POST", "/control/shilp/unregister", json={"success": True}, repeat=True)

    results = discovery.unregister_shilp_service("acct", "addr", "node-1", ReplicaType.SINGLE_NODE)

    assert [r.success for r in results] == [True, True]
    assert all(c.path == "/control/shilp/unregister" for c in stub.calls)


def test_invalid_replica_type(stub, discovery):
    with pytest.raises(ValidationError):
        discovery.register_shilp_service("acct", "addr", "node-1", 7)
    assert stub.calls == []


@pytest.mark.parametrize("method_name,endpoint", [
    ("register_tei_service", "register"),
    ("unregister_tei_service", "unregister"),
])
def test_tei_services_are_read_only(stub, discovery, method_name, endpoint):
    stub.add("POST", f"/control/tei/{endpoint}", json={"success": True})

    result = getattr(discovery, method_name)("acct", "10.0.0.9:8080", "tei-1")

    assert result.success
    assert stub.last.json() == {
        "account_id": "acct",
        "address": "10.0.0.9:8080",
        "id": "tei-1",
        "is_read": True,
        "is_write": False,
    }
