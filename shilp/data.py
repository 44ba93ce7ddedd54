"""Data ingestion, storage and search endpoints."""

from pathlib import Path

import orjson

from .models import (
    FileReaderOptions,
    GenericResponse,
    IngestRequest,
    IngestResponse,
    IngestSourceType,
    ListEmbeddingModelsResponse,
    ListIngestionSourcesResponse,
    ListStorageResponse,
    ReadDocumentResponse,
    SearchRequest,
    SearchResponse,
)
from .transport import EventStream, ResourceGroup, ValidationError

DATA_PATH = "/api/data/v1"


def _source_value(source: IngestSourceType | str | None) -> str | None:
    if source is None or source == "":
        return None
    if isinstance(source, IngestSourceType):
        return source.value
    return str(source)


class DataAPI(ResourceGroup):
    """Bulk ingest, search, upload storage and embedding model listing."""

    def ingest_data(self, req: IngestRequest) -> IngestResponse:
        """Start a bulk ingest from an uploaded file or a MongoDB collection."""
        if not req.collection_name:
            raise ValidationError("collection_name cannot be empty")
        return IngestResponse.from_dict(
            self._transport.request("POST", f"{DATA_PATH}/ingest", req.to_dict())
        )

    def search_data(self, req: SearchRequest) -> SearchResponse:
        """
        Search a collection.

        Field weights, filters and sort order travel in the request body.
        """
        if not req.collection:
            raise ValidationError("collection cannot be empty")
        return SearchResponse.from_dict(
            self._transport.request("POST", f"{DATA_PATH}/search", req.to_dict())
        )

    def list_storage(
        self,
        path: str | None = None,
        source: IngestSourceType | str | None = None,
    ) -> ListStorageResponse:
        """
        List a directory of the uploads storage.

        For the MongoDB source an empty path lists databases and a database
        name lists its collections.
        """
        params = {
            "path": path or None,
            "source": _source_value(source),
        }
        return ListStorageResponse.from_dict(
            self._transport.request("GET", f"{DATA_PATH}/storage/list", params=params)
        )

    def list_ingest_sources(self) -> ListIngestionSourcesResponse:
        return ListIngestionSourcesResponse.from_dict(
            self._transport.request("GET", f"{DATA_PATH}/ingest/sources")
        )

    def read_document(
        self,
        path: str,
        options: FileReaderOptions | None = None,
    ) -> ReadDocumentResponse:
        """
        Preview the first rows of an uploaded CSV file or a MongoDB collection.

        Args:
            path: File path in uploads storage, or "database/collection" for MongoDB
            options: Source, skip/limit and MongoDB filter

        Raises:
            ValidationError: before any request is sent, on an empty path,
                negative rows/skip, a malformed MongoDB path or an unknown source
        """
        options = options or FileReaderOptions()

        if not path:
            raise ValidationError("path cannot be empty")

        rows = options.limit or 0
        if rows < 0:
            raise ValidationError("rows cannot be negative")

        skip = options.skip or 0
        if skip < 0:
            raise ValidationError("skip cannot be negative")

        source = _source_value(options.source)
        if source is not None and source not in (IngestSourceType.FILE.value, IngestSourceType.MONGODB.value):
            raise ValidationError(f"invalid source type - {source}")

        is_mongo = source == IngestSourceType.MONGODB.value
        if is_mongo and len(path.split("/")) != 2:
            raise ValidationError("for mongodb source, path must be in the format 'database/collection'")

        params = {
            "path": path,
            "source": source or IngestSourceType.FILE.value,
        }
        if rows > 0:
            params["rows"] = rows
        if skip > 0:
            params["skip"] = skip
        if is_mongo and options.mongo_filter:
            params["mongo_filter"] = orjson.dumps(options.mongo_filter).decode()

        return ReadDocumentResponse.from_dict(
            self._transport.request("GET", f"{DATA_PATH}/storage/read", params=params)
        )

    def upload_data_file(self, file_path: Path | str) -> GenericResponse:
        """Upload a data file to the uploads storage for later ingestion."""
        self._transport.upload_file("POST", f"{DATA_PATH}/storage/upload", file_path)
        return GenericResponse(success=True, message="Upload completed")

    def stream_ingest_stats(self, collection: str) -> EventStream:
        """
        Follow ingestion statistics for a collection.

        Usage:
            with client.data.stream_ingest_stats("docs") as events:
                for line in events:
                    print(line)
        """
        if not collection:
            raise ValidationError("collection cannot be empty")
        return self._transport.stream_lines(
            "GET", f"{DATA_PATH}/ingest/stats", params={"collection": collection}
        )

    def list_embedding_models(self) -> ListEmbeddingModelsResponse:
        """List embedding providers and their models."""
        return ListEmbeddingModelsResponse.from_dict(
            self._transport.request("GET", f"{DATA_PATH}/embedding/models")
        )
