"""Collection management endpoints."""

from pathlib import Path

from .models import (
    AddCollectionRequest,
    GenericResponse,
    InsertRecordRequest,
    InsertRecordResponse,
    ListCollectionsResponse,
)
from .transport import DownloadStream, ResourceGroup, ValidationError, path_segment

COLLECTIONS_PATH = "/api/collections/v1"


def _require_name(value: str, what: str = "collection name"):
    if not value:
        raise ValidationError(f"{what} cannot be empty")


class CollectionsAPI(ResourceGroup):
    """Create, drop, load and export collections; insert and delete single records."""

    def list_collections(self) -> ListCollectionsResponse:
        """List all collections together with the storage backends the server supports."""
        return ListCollectionsResponse.from_dict(
            self._transport.request("GET", f"{COLLECTIONS_PATH}/")
        )

    def add_collection(self, req: AddCollectionRequest) -> GenericResponse:
        """Create a new collection."""
        _require_name(req.name)
        return GenericResponse.from_dict(
            self._transport.request("POST", f"{COLLECTIONS_PATH}/", req.to_dict())
        )

    def drop_collection(self, name: str) -> GenericResponse:
        """
        Drop a collection and all of its records.

        Dropping a collection that does not exist is reported by the server
        as a ``success=False`` response or an ApiError, depending on the
        status code it chooses.
        """
        _require_name(name)
        return GenericResponse.from_dict(
            self._transport.request("DELETE", f"{COLLECTIONS_PATH}/{path_segment(name)}")
        )

    def delete_record(self, collection_name: str, record_id: str) -> GenericResponse:
        _require_name(collection_name)
        _require_name(record_id, "record id")
        return GenericResponse.from_dict(
            self._transport.request(
                "DELETE",
                f"{COLLECTIONS_PATH}/{path_segment(collection_name)}/{path_segment(record_id)}",
            )
        )

    def expiry_cleanup(self, collection_name: str) -> GenericResponse:
        """Remove records whose expiry has passed."""
        return self._lifecycle(collection_name, "expiry-cleanup")

    def flush_collection(self, name: str) -> GenericResponse:
        """Persist the collection's in-memory state to storage."""
        return self._lifecycle(name, "flush")

    def load_collection(self, name: str) -> GenericResponse:
        return self._lifecycle(name, "load")

    def unload_collection(self, name: str) -> GenericResponse:
        return self._lifecycle(name, "unload")

    def _lifecycle(self, name: str, action: str) -> GenericResponse:
        _require_name(name)
        return GenericResponse.from_dict(
            self._transport.request("POST", f"{COLLECTIONS_PATH}/{path_segment(name)}/{action}")
        )

    def export_collection(self, name: str) -> DownloadStream:
        """
        Export a collection as a file download.

        The returned stream holds an open connection until it is read to the
        end or closed; use it as a context manager.
        """
        _require_name(name)
        return self._transport.request_stream("POST", f"{COLLECTIONS_PATH}/{path_segment(name)}/export")

    def import_collection(self, file_path: Path | str) -> GenericResponse:
        """Import a collection from a previously exported file."""
        self._transport.upload_file("POST", f"{COLLECTIONS_PATH}/import", file_path)
        return GenericResponse(success=True, message="Import completed")

    def rename_collection(self, old_name: str, new_name: str) -> GenericResponse:
        _require_name(old_name)
        _require_name(new_name, "new collection name")
        return GenericResponse.from_dict(
            self._transport.request(
                "PUT",
                f"{COLLECTIONS_PATH}/{path_segment(old_name)}/rename/{path_segment(new_name)}",
            )
        )

    def reindex_collection(self, collection_name: str) -> GenericResponse:
        """Rebuild the collection's vector index (debug)."""
        _require_name(collection_name)
        return GenericResponse.from_dict(
            self._transport.request("PUT", f"{COLLECTIONS_PATH}/{path_segment(collection_name)}/reindex")
        )

    def insert_record(self, req: InsertRecordRequest) -> InsertRecordResponse:
        _require_name(req.collection)
        return InsertRecordResponse.from_dict(
            self._transport.request("POST", f"{COLLECTIONS_PATH}/record", req.to_dict())
        )
