"""Tests for ingest, search, storage and embedding model endpoints."""

import pytest

from shilp import (
    CompoundFilter,
    CompoundSort,
    FileReaderOptions,
    FilterExpression,
    FilterOp,
    IngestRequest,
    IngestSourceType,
    InsertRecordRequest,
    SearchRequest,
    SortExpression,
    SortOrder,
    ValidationError,
)


class TestSearch:

    def test_search_sends_full_request(self, stub, client):
        stub.add("POST", "/api/data/v1/search", json={
            "success": True,
            "data": [{"id": "a", "title": "first"}, {"id": "b"}, {"title": "no id"}],
        })

        result = client.data.search_data(SearchRequest(
            collection="docs",
            query="hello",
            fields=["title"],
            limit=5,
            weights={"title": 2.0},
            filters=CompoundFilter([FilterExpression("year", FilterOp.GREATER_THAN, 2020)]),
            sort=CompoundSort([SortExpression("year", SortOrder.DESCENDING)]),
        ))

        assert result.ids() == ["a", "b"]
        assert stub.last.json() == {
            "collection": "docs",
            "query": "hello",
            "fields": ["title"],
            "limit": 5,
            "weights": {"title": 2.0},
            "filters": {"and": [{"attribute": "year", "op": 2, "value": 2020}]},
            "sort": {"sorts": [{"attribute": "year", "order": 1}]},
        }

    def test_search_requires_collection(self, stub, client):
        with pytest.raises(ValidationError):
            client.data.search_data(SearchRequest(collection="", query="hello"))
        assert stub.calls == []


def test_insert_flush_search_round_trip(stub, client):
    """A record inserted and flushed is returned by a later search."""
    store = {}

    def insert(call):
        body = call.json()
        store[body["id"]] = body["record"]
        return 200, {"success": True, "record": {"id": body["id"], "fields": body["record"]}}

    def search(call):
        query = call.json()["query"]
        hits = [
            {"id": record_id, **record}
            for record_id, record in store.items()
            if any(query in str(value) for value in record.values())
        ]
        return 200, {"success": True, "data": hits}

    stub.add("POST", "/api/collections/v1/record", handler=insert)
    stub.add("POST", "/api/collections/v1/docs/flush", json={"success": True})
    stub.add("POST", "/api/data/v1/search", handler=search)

    inserted = client.collections.insert_record(InsertRecordRequest(
        collection="docs", record={"text": "hello world"}, id="record-1", fields=["text"],
    ))
    assert inserted.success
    assert client.collections.flush_collection("docs").success

    result = client.data.search_data(SearchRequest(collection="docs", query="hello"))

    assert "record-1" in result.ids()


class TestIngest:

    def test_ingest_from_file(self, stub, client):
        stub.add("POST", "/api/data/v1/ingest", json={"success": True, "details": ["100 rows"]})

        result = client.data.ingest_data(IngestRequest(
            collection_name="docs",
            fields=["body"],
            file_path="uploads/docs.csv",
            source_type=IngestSourceType.FILE,
        ))

        assert result.details == ["100 rows"]
        assert stub.last.json() == {
            "file_path": "uploads/docs.csv",
            "source_type": "file",
            "collection_name": "docs",
            "fields": ["body"],
        }

    def test_ingest_requires_collection(self, client):
        with pytest.raises(ValidationError):
            client.data.ingest_data(IngestRequest(collection_name="", fields=["body"]))

    def test_list_ingest_sources(self, stub, client):
        stub.add("GET", "/api/data/v1/ingest/sources", json={"success": True, "data": ["file", "mongodb", "kafka"]})

        result = client.data.list_ingest_sources()

        assert result.data == [IngestSourceType.FILE, IngestSourceType.MONGODB, "kafka"]

    def test_stream_ingest_stats(self, stub, client):
        stub.add("GET", "/api/data/v1/ingest/stats", body=b'data: {"processed": 10}\n\ndata: {"processed": 20}\n\n')

        with client.data.stream_ingest_stats("docs") as events:
            lines = list(events)

        assert lines == ['data: {"processed": 10}', 'data: {"processed": 20}']
        assert stub.last.params == {"collection": "docs"}


class TestStorage:

    def test_list_storage(self, stub, client):
        stub.add("GET", "/api/data/v1/storage/list", json={
            "success": True,
            "data": {"items": [{"name": "docs.csv", "isDir": False}, {"name": "archive", "isDir": True}]},
        })

        result = client.data.list_storage("uploads")

        assert [(i.name, i.is_dir) for i in result.items] == [("docs.csv", False), ("archive", True)]
        assert stub.last.params == {"path": "uploads"}

    def test_list_storage_root(self, stub, client):
        stub.add("GET", "/api/data/v1/storage/list", json={"success": True, "data": {"items": []}})

        client.data.list_storage(source=IngestSourceType.MONGODB)

        assert stub.last.params == {"source": "mongodb"}

    def test_upload_data_file(self, stub, client, tmp_path):
        stub.add("POST", "/api/data/v1/storage/upload", body=b"")
        path = tmp_path / "docs.csv"
        path.write_text("id,body\n1,hi\n")

        result = client.data.upload_data_file(path)

        assert result.success
        assert result.message == "Upload completed"


class TestReadDocument:

    def test_defaults_to_file_source(self, stub, client):
        stub.add("GET", "/api/data/v1/storage/read", json={"success": True, "data": [{"id": 1}]})

        result = client.data.read_document("uploads/docs.csv")

        assert result.data == [{"id": 1}]
        assert stub.last.params == {"path": "uploads/docs.csv", "source": "file"}

    def test_rows_and_skip(self, stub, client):
        stub.add("GET", "/api/data/v1/storage/read", json={"success": True, "data": []})

        client.data.read_document("docs.csv", FileReaderOptions(limit=10, skip=5))

        assert stub.last.params == {"path": "docs.csv", "source": "file", "rows": "10", "skip": "5"}

    def test_mongodb_filter(self, stub, client):
        stub.add("GET", "/api/data/v1/storage/read", json={"success": True, "data": []})

        client.data.read_document(
            "shop/orders",
            FileReaderOptions(source="mongodb", mongo_filter={"status": "open"}),
        )

        assert stub.last.params == {
            "path": "shop/orders",
            "source": "mongodb",
            "mongo_filter": '{"status":"open"}',
        }

    def test_filter_ignored_for_files(self, stub, client):
        stub.add("GET", "/api/data/v1/storage/read", json={"success": True, "data": []})

        client.data.read_document("docs.csv", FileReaderOptions(mongo_filter={"a": 1}))

        assert "mongo_filter" not in stub.last.params

    @pytest.mark.parametrize("path,options,message", [
        ("", None, "path cannot be empty"),
        ("docs.csv", FileReaderOptions(limit=-1), "rows cannot be negative"),
        ("docs.csv", FileReaderOptions(skip=-1), "skip cannot be negative"),
        ("docs.csv", FileReaderOptions(source="kafka"), "invalid source type - kafka"),
        ("shop", FileReaderOptions(source=IngestSourceType.MONGODB), "database/collection"),
        ("a/b/c", FileReaderOptions(source="mongodb"), "database/collection"),
    ])
    def test_invalid_input_sends_nothing(self, stub, client, path, options, message):
        with pytest.raises(ValidationError, match=message):
            client.data.read_document(path, options)
        assert stub.calls == []


def test_list_embedding_models(stub, client):
    stub.add("GET", "/api/data/v1/embedding/models", json={
        "success": True,
        "supports_distributed_embedding": True,
        "data": [{
            "name": "tei",
            "is_default": True,
            "models": [{"name": "bge-small", "is_default": True}, {"name": "e5"}],
        }],
    })

    result = client.data.list_embedding_models()

    assert result.supports_distributed_embedding
    provider = result.data[0]
    assert provider.name == "tei"
    assert [m.name for m in provider.models] == ["bge-small", "e5"]
