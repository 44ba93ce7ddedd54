"""Tests for oplog reads and replica registration/heartbeats."""

import logging
import threading

import pytest

from shilp import (
    LSNRegressionError,
    OpType,
    OplogOrderError,
    ShilpClient,
    ValidationError,
)

from conftest import BASE_URL


def entry(lsn, op_type="insert", collection="docs", doc_id=None):
    return {
        "lsn": lsn,
        "op_type": op_type,
        "collection": collection,
        "doc_id": doc_id or f"doc-{lsn}",
        "timestamp": "2024-01-01T00:00:00Z",
    }


class TestGetEntries:

    def test_entries_after_lsn(self, stub, client):
        stub.add("GET", "/api/oplog/v1/", json={
            "success": True,
            "entries": [
                entry(6),
                {**entry(7, "update"), "full_doc": {"id": "doc-7", "fields": {"title": "v2"}}},
                entry(8, "rename_collection") | {"new_name": "docs2"},
            ],
            "last_lsn": 8,
            "count": 3,
        })

        result = client.oplog.get_oplog_entries("docs", after_lsn=5, limit=10)

        assert [e.lsn for e in result.entries] == [6, 7, 8]
        assert result.entries[1].op_type == OpType.UPDATE
        assert result.entries[1].full_doc.fields == {"title": "v2"}
        assert result.entries[2].new_name == "docs2"
        assert result.last_lsn == 8
        assert stub.last.params == {"after_lsn": "5", "collection": "docs", "limit": "10"}

    @pytest.mark.parametrize("limit", [None, 0, -5])
    def test_limit_omitted_when_not_positive(self, stub, client, limit):
        stub.add("GET", "/api/oplog/v1/", json={"success": True, "entries": []})

        client.oplog.get_oplog_entries("docs", after_lsn=0, limit=limit)

        assert "limit" not in stub.last.params

    def test_empty_collection_reads_all(self, stub, client):
        stub.add("GET", "/api/oplog/v1/", json={"success": True, "entries": []})

        client.oplog.get_oplog_entries("", after_lsn=0)

        assert stub.last.params == {"after_lsn": "0"}

    def test_negative_after_lsn(self, stub, client):
        with pytest.raises(ValidationError):
            client.oplog.get_oplog_entries("docs", after_lsn=-1)
        assert stub.calls == []

    def test_unknown_op_type_kept(self, stub, client):
        stub.add("GET", "/api/oplog/v1/", json={"success": True, "entries": [entry(1, "truncate")]})

        result = client.oplog.get_oplog_entries("docs", after_lsn=0)

        assert result.entries[0].op_type == "truncate"


class TestIterEntries:

    def test_pages_until_drained(self, stub, client):
        stub.add("GET", "/api/oplog/v1/", json={"success": True, "entries": [entry(1), entry(2)]})
        stub.add("GET", "/api/oplog/v1/", json={"success": True, "entries": [entry(3)]})
        stub.add("GET", "/api/oplog/v1/", json={"success": True, "entries": []})

        lsns = [e.lsn for e in client.oplog.iter_oplog_entries("docs", 0, batch_size=2)]

        assert lsns == [1, 2, 3]
        assert [c.params["after_lsn"] for c in stub.calls] == ["0", "2", "3"]

    def test_out_of_order_page(self, stub, client):
        stub.add("GET", "/api/oplog/v1/", json={"success": True, "entries": [entry(3), entry(2)]})

        with pytest.raises(OplogOrderError):
            list(client.oplog.iter_oplog_entries("docs", 0))

    def test_entry_not_after_requested_lsn(self, stub, client):
        stub.add("GET", "/api/oplog/v1/", json={"success": True, "entries": [entry(5)]})

        with pytest.raises(OplogOrderError):
            list(client.oplog.iter_oplog_entries("docs", 5))


class TestHeartbeat:

    def test_heartbeat_payload(self, stub, client):
        stub.add("POST", "/api/oplog/v1/heartbeat", json={"success": True})

        result = client.oplog.update_replica_lsn("docs", "replica-1", 42)

        assert result.success
        assert stub.last.json() == {"collection": "docs", "replica_id": "replica-1", "lsn": 42}
        assert client.oplog.reported_lsn("docs", "replica-1") == 42

    def test_same_lsn_is_keep_alive(self, stub, client):
        stub.add("POST", "/api/oplog/v1/heartbeat", json={"success": True}, repeat=True)

        client.oplog.update_replica_lsn("docs", "replica-1", 10)
        client.oplog.update_replica_lsn("docs", "replica-1", 10)

        assert len(stub.calls) == 2

    def test_regression_rejected_without_request(self, stub, client):
        stub.add("POST", "/api/oplog/v1/heartbeat", json={"success": True}, repeat=True)
        client.oplog.update_replica_lsn("docs", "replica-1", 10)

        with pytest.raises(LSNRegressionError) as exc_info:
            client.oplog.update_replica_lsn("docs", "replica-1", 9)

        assert exc_info.value.reported == 10
        assert len(stub.calls) == 1
        assert client.oplog.reported_lsn("docs", "replica-1") == 10

    def test_watermarks_are_per_collection_and_replica(self, stub, client):
        stub.add("POST", "/api/oplog/v1/heartbeat", json={"success": True}, repeat=True)

        client.oplog.update_replica_lsn("docs", "replica-1", 10)
        client.oplog.update_replica_lsn("notes", "replica-1", 3)
        client.oplog.update_replica_lsn("docs", "replica-2", 1)

        assert client.oplog.reported_lsn("notes", "replica-1") == 3

    def test_rejected_heartbeat_not_recorded(self, stub, client, caplog):
        stub.add("POST", "/api/oplog/v1/heartbeat", json={"success": False, "message": "unknown replica"})

        with caplog.at_level(logging.WARNING, logger="shilp.oplog"):
            result = client.oplog.update_replica_lsn("docs", "replica-1", 10)

        assert not result.success
        assert client.oplog.reported_lsn("docs", "replica-1") is None
        assert "unknown replica" in caplog.text

    @pytest.mark.parametrize("replica_id,lsn", [("", 1), ("replica-1", -1)])
    def test_invalid_heartbeat(self, stub, client, replica_id, lsn):
        with pytest.raises(ValidationError):
            client.oplog.update_replica_lsn("docs", replica_id, lsn)
        assert stub.calls == []

    def test_concurrent_heartbeats_stay_monotonic(self, stub, client):
        stub.add("POST", "/api/oplog/v1/heartbeat", json={"success": True}, repeat=True)
        errors = []

        def beat(start):
            for lsn in range(start, start + 20):
                try:
                    client.oplog.update_replica_lsn("docs", "replica-1", lsn)
                except LSNRegressionError as e:
                    errors.append(e)

        threads = [threading.Thread(target=beat, args=(n * 20,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        sent = [c.json()["lsn"] for c in stub.calls]
        assert sent == sorted(sent)
        assert client.oplog.reported_lsn("docs", "replica-1") == max(sent)
        assert len(sent) + len(errors) == 80


class TestRegistration:

    def test_register_twice_is_idempotent(self, stub, client):
        stub.add("POST", "/api/oplog/v1/register", json={"success": True}, repeat=True)

        first = client.oplog.register_replica("replica-1")
        second = client.oplog.register_replica("replica-1")

        assert first.success and second.success
        assert [c.json() for c in stub.calls] == [{"replica_id": "replica-1"}] * 2

    def test_register_requires_id(self, client):
        with pytest.raises(ValidationError):
            client.oplog.register_replica("")

    def test_unregister_uses_register_path_by_default(self, stub, client, caplog):
        stub.add("POST", "/api/oplog/v1/register", json={"success": True})

        with caplog.at_level(logging.WARNING, logger="shilp.oplog"):
            client.oplog.unregister_replica("replica-1")

        assert stub.last.path == "/api/oplog/v1/register"
        assert stub.last.json() == {"replica_id": "replica-1"}
        assert "unregister_path" in caplog.text

    def test_unregister_path_override(self, stub, session):
        stub.add("POST", "/api/oplog/v1/unregister", json={"success": True})
        client = ShilpClient(BASE_URL, session=session, unregister_path="/api/oplog/v1/unregister")

        assert client.oplog.unregister_replica("replica-1").success
        assert stub.last.path == "/api/oplog/v1/unregister"

    def test_unregister_forgets_watermarks(self, stub, client):
        stub.add("POST", "/api/oplog/v1/heartbeat", json={"success": True}, repeat=True)
        stub.add("POST", "/api/oplog/v1/register", json={"success": True})
        client.oplog.update_replica_lsn("docs", "replica-1", 50)

        client.oplog.unregister_replica("replica-1")
        client.oplog.update_replica_lsn("docs", "replica-1", 1)

        assert client.oplog.reported_lsn("docs", "replica-1") == 1


class TestStatus:

    def test_status(self, stub, client):
        stub.add("GET", "/api/oplog/v1/status", json={
            "success": True,
            "last_lsn": 120,
            "retention_lsn": 80,
            "replica_count": 2,
        })

        status = client.oplog.get_oplog_status("docs")

        assert (status.last_lsn, status.retention_lsn, status.replica_count) == (120, 80, 2)
        assert status.retention_lsn <= status.last_lsn
        assert stub.last.params == {"collection": "docs"}

    def test_status_requires_collection(self, stub, client):
        with pytest.raises(ValidationError):
            client.oplog.get_oplog_status("")
        assert stub.calls == []
