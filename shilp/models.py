"""Request and response types for the Shilp HTTP API."""

import dataclasses
from dataclasses import asdict, dataclass, field
from enum import Enum, IntEnum
from typing import Any


class AttrType(IntEnum):
    """Metadata attribute types."""
    INT64 = 0
    FLOAT64 = 1
    STRING = 2
    BOOL = 3


class StorageBackendType(IntEnum):
    """Storage backend for a collection's index or reference documents."""
    DOES_NOT_EXIST = -1
    FILE = 1
    S3 = 2


class IngestSourceType(str, Enum):
    FILE = "file"
    MONGODB = "mongodb"


class FilterOp(IntEnum):
    EQUALS = 0
    NOT_EQUALS = 1
    GREATER_THAN = 2
    GREATER_THAN_OR_EQUAL = 3
    LESS_THAN = 4
    LESS_THAN_OR_EQUAL = 5
    IN = 6
    NOT_IN = 7


class SortOrder(IntEnum):
    ASCENDING = 0
    DESCENDING = 1


class OpType(str, Enum):
    """Kind of mutation recorded in an oplog entry."""
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    DROP_COLLECTION = "drop_collection"
    RENAME_COLLECTION = "rename_collection"


class SyncStatus(str, Enum):
    READY = "ready"
    SYNCING = "syncing"


class ReplicaType(IntEnum):
    READ_REPLICA = 0
    WRITE_REPLICA = 1
    SINGLE_NODE = 2


def _coerce(enum_type, value):
    """Map a wire value onto ``enum_type``, keeping unknown values as-is."""
    if value is None:
        return None
    try:
        return enum_type(value)
    except ValueError:
        return value


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


def _enum_values(mapping: dict[str, Any] | None) -> dict[str, Any] | None:
    if mapping is None:
        return None
    return {key: value.value if isinstance(value, Enum) else value for key, value in mapping.items()}


# ============================================================================
# Common
# ============================================================================

@dataclass
class GenericResponse:
    """Envelope carried by every JSON response."""
    success: bool = False
    message: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GenericResponse":
        return cls(success=bool(data.get("success", False)), message=data.get("message", ""))


UpdateReplicaLSNResponse = GenericResponse


@dataclass
class HealthResponse:
    success: bool = False
    version: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HealthResponse":
        return cls(success=bool(data.get("success", False)), version=data.get("version", ""))


# ============================================================================
# Collections
# ============================================================================

@dataclass
class MetadataColumnSchema:
    name: str
    type: AttrType

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MetadataColumnSchema":
        return cls(name=data.get("name", ""), type=_coerce(AttrType, data.get("type", 0)))


@dataclass
class Collection:
    """Collection as listed by the server."""
    name: str
    is_loaded: bool = False
    fields: list[str] = field(default_factory=list)
    searchable_fields: list[str] = field(default_factory=list)
    metadata: list[MetadataColumnSchema] = field(default_factory=list)
    has_metadata_enabled: bool = False
    no_reference_storage: bool = False
    storage_type: StorageBackendType = StorageBackendType.FILE
    reference_storage_type: StorageBackendType = StorageBackendType.FILE

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Collection":
        return cls(
            name=data.get("name", ""),
            is_loaded=bool(data.get("is_loaded", False)),
            fields=list(data.get("fields") or []),
            searchable_fields=list(data.get("searchable_fields") or []),
            metadata=[MetadataColumnSchema.from_dict(m) for m in data.get("metadata") or []],
            has_metadata_enabled=bool(data.get("has_metadata_enabled", False)),
            no_reference_storage=bool(data.get("no_reference_storage", False)),
            storage_type=_coerce(StorageBackendType, data.get("storage_type", 1)),
            reference_storage_type=_coerce(StorageBackendType, data.get("reference_storage_type", 1)),
        )


@dataclass
class MetadataSupportInfo:
    name: str
    support_metadata: bool = False
    type: StorageBackendType = StorageBackendType.FILE
    is_default: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MetadataSupportInfo":
        return cls(
            name=data.get("name", ""),
            support_metadata=bool(data.get("support_metadata", False)),
            type=_coerce(StorageBackendType, data.get("type", 1)),
            is_default=bool(data.get("is_default", False)),
        )


@dataclass
class ListCollectionsResponse(GenericResponse):
    data: list[Collection] = field(default_factory=list)
    metadata_info: list[MetadataSupportInfo] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ListCollectionsResponse":
        return cls(
            success=bool(data.get("success", False)),
            message=data.get("message", ""),
            data=[Collection.from_dict(c) for c in data.get("data") or []],
            metadata_info=[MetadataSupportInfo.from_dict(m) for m in data.get("metadata_info") or []],
        )

    def names(self) -> list[str]:
        return [collection.name for collection in self.data]


@dataclass
class AddCollectionRequest:
    name: str
    no_reference_storage: bool | None = None
    has_metadata_storage: bool | None = None
    storage_type: StorageBackendType | None = None
    reference_storage_type: StorageBackendType | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "name": self.name,
            "no_reference_storage": self.no_reference_storage,
            "has_metadata_storage": self.has_metadata_storage,
            "storage_type": int(self.storage_type) if self.storage_type is not None else None,
            "reference_storage_type": (
                int(self.reference_storage_type) if self.reference_storage_type is not None else None
            ),
        })


@dataclass
class RecordData:
    """Record as stored by the server after an insert."""
    id: str
    expiry: int = 0
    fields: dict[str, Any] = field(default_factory=dict)
    keyword_fields: dict[str, bool] = field(default_factory=dict)
    metadata_fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecordData":
        return cls(
            id=data.get("id", ""),
            expiry=data.get("expiry") or 0,
            fields=dict(data.get("fields") or {}),
            keyword_fields=dict(data.get("keyword_fields") or {}),
            metadata_fields=dict(data.get("metadata_fields") or {}),
        )


@dataclass
class InsertRecordRequest:
    """
    Single-record insert.

    ``record`` holds the raw document; ``fields`` names the ones to embed and
    ``keyword_fields`` the ones indexed for exact match.
    """
    collection: str
    record: dict[str, Any]
    id: str | None = None
    expiry: int | None = None
    fields: list[str] | None = None
    keyword_fields: list[str] | None = None
    metadata_fields: dict[str, AttrType] | None = None
    embedding_provider: str | None = None
    model: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "collection": self.collection,
            "record": self.record,
            "id": self.id,
            "expiry": self.expiry,
            "fields": self.fields,
            "keyword_fields": self.keyword_fields,
            "metadata_fields": _enum_values(self.metadata_fields),
            "embedding_provider": self.embedding_provider,
            "model": self.model,
        })


@dataclass
class InsertRecordResponse(GenericResponse):
    record: RecordData | None = None
    remaining_records: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InsertRecordResponse":
        record = data.get("record")
        return cls(
            success=bool(data.get("success", False)),
            message=data.get("message", ""),
            record=RecordData.from_dict(record) if record else None,
            remaining_records=data.get("remaining_records"),
        )


# ============================================================================
# Data / ingest / search
# ============================================================================

@dataclass
class IngestRequest:
    """
    Bulk ingest from an uploaded file or a MongoDB collection.

    Use either ``file_path`` or the MongoDB settings
    (``database_name``, ``mongo_collection``, ``query``).
    """
    collection_name: str
    fields: list[str]
    file_path: str | None = None
    source_type: IngestSourceType | None = None
    database_name: str | None = None
    mongo_collection: str | None = None
    query: dict[str, Any] | None = None
    mongo_fetch_batch_size: int | None = None
    keyword_fields: list[str] | None = None
    metadata_fields: dict[str, AttrType] | None = None
    id_field: str | None = None
    expiry_field: str | None = None
    embedding_provider: str | None = None
    embedding_model: str | None = None
    ingestion_batch_size: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "file_path": self.file_path,
            "source_type": self.source_type.value if isinstance(self.source_type, Enum) else self.source_type,
            "database_name": self.database_name,
            "mongo_collection": self.mongo_collection,
            "query": self.query,
            "mongo_fetch_batch_size": self.mongo_fetch_batch_size,
            "collection_name": self.collection_name,
            "keyword_fields": self.keyword_fields,
            "metadata_fields": _enum_values(self.metadata_fields),
            "fields": self.fields,
            "id_field": self.id_field,
            "expiry_field": self.expiry_field,
            "embedding_provider": self.embedding_provider,
            "embedding_model": self.embedding_model,
            "ingestion_batch_size": self.ingestion_batch_size,
        })


@dataclass
class IngestResponse(GenericResponse):
    details: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IngestResponse":
        return cls(
            success=bool(data.get("success", False)),
            message=data.get("message", ""),
            details=list(data.get("details") or []),
        )


@dataclass
class ListIngestionSourcesResponse(GenericResponse):
    data: list[IngestSourceType] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ListIngestionSourcesResponse":
        return cls(
            success=bool(data.get("success", False)),
            message=data.get("message", ""),
            data=[_coerce(IngestSourceType, s) for s in data.get("data") or []],
        )


@dataclass
class FileReaderOptions:
    """Options for previewing an uploaded file or a MongoDB collection."""
    source: IngestSourceType | str | None = None
    mongo_filter: dict[str, Any] | None = None
    skip: int = 0
    limit: int = 0


@dataclass
class FilterExpression:
    attribute: str
    op: FilterOp = FilterOp.EQUALS
    value: Any = None
    values: list[Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "attribute": self.attribute,
            "op": int(self.op),
            "value": self.value,
            "values": self.values,
        })


@dataclass
class CompoundFilter:
    """Conjunction of filter expressions."""
    and_: list[FilterExpression] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"and": [expr.to_dict() for expr in self.and_]}


@dataclass
class SortExpression:
    attribute: str
    order: SortOrder = SortOrder.ASCENDING

    def to_dict(self) -> dict[str, Any]:
        return {"attribute": self.attribute, "order": int(self.order)}


@dataclass
class CompoundSort:
    sorts: list[SortExpression] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"sorts": [sort.to_dict() for sort in self.sorts]}


@dataclass
class SearchRequest:
    """
    Search query.

    ``weights`` maps field name to its relative weight in the combined score;
    ``max_distance`` drops results further than the given vector distance.
    """
    collection: str
    query: str
    fields: list[str] | None = None
    limit: int | None = None
    weights: dict[str, float] | None = None
    max_distance: float | None = None
    filters: CompoundFilter | None = None
    sort: CompoundSort | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "collection": self.collection,
            "query": self.query,
            "fields": self.fields,
            "limit": self.limit,
            "weights": self.weights,
            "max_distance": self.max_distance,
            "filters": self.filters.to_dict() if self.filters else None,
            "sort": self.sort.to_dict() if self.sort else None,
        })


@dataclass
class SearchResponse(GenericResponse):
    data: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchResponse":
        return cls(
            success=bool(data.get("success", False)),
            message=data.get("message", ""),
            data=list(data.get("data") or []),
        )

    def ids(self) -> list[str]:
        """Record ids of the results, in rank order."""
        return [str(hit["id"]) for hit in self.data if "id" in hit]


@dataclass
class StorageItem:
    name: str
    is_dir: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StorageItem":
        return cls(name=data.get("name", ""), is_dir=bool(data.get("isDir", False)))


@dataclass
class ListStorageResponse(GenericResponse):
    items: list[StorageItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ListStorageResponse":
        payload = data.get("data") or {}
        return cls(
            success=bool(data.get("success", False)),
            message=data.get("message", ""),
            items=[StorageItem.from_dict(i) for i in payload.get("items") or []],
        )


@dataclass
class ReadDocumentResponse(GenericResponse):
    data: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReadDocumentResponse":
        return cls(
            success=bool(data.get("success", False)),
            message=data.get("message", ""),
            data=list(data.get("data") or []),
        )


@dataclass
class EmbeddingModel:
    name: str
    is_default: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EmbeddingModel":
        return cls(name=data.get("name", ""), is_default=bool(data.get("is_default", False)))


@dataclass
class EmbeddingProvider:
    name: str
    is_default: bool = False
    models: list[EmbeddingModel] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EmbeddingProvider":
        return cls(
            name=data.get("name", ""),
            is_default=bool(data.get("is_default", False)),
            models=[EmbeddingModel.from_dict(m) for m in data.get("models") or []],
        )


@dataclass
class ListEmbeddingModelsResponse(GenericResponse):
    data: list[EmbeddingProvider] = field(default_factory=list)
    supports_distributed_embedding: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ListEmbeddingModelsResponse":
        return cls(
            success=bool(data.get("success", False)),
            message=data.get("message", ""),
            data=[EmbeddingProvider.from_dict(p) for p in data.get("data") or []],
            supports_distributed_embedding=bool(data.get("supports_distributed_embedding", False)),
        )


# ============================================================================
# Debug (index introspection)
# ============================================================================

@dataclass
class DebugDistanceResponse(GenericResponse):
    distance: float = 0.0
    vector: list[float] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DebugDistanceResponse":
        payload = data.get("data") or {}
        return cls(
            success=bool(data.get("success", False)),
            message=data.get("message", ""),
            distance=payload.get("distance", 0.0),
            vector=list(payload.get("vector") or []),
        )


@dataclass
class DebugNeighbor:
    node_id: int
    vector_id: str = ""
    field: str = ""
    distance: float = 0.0
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DebugNeighbor":
        return cls(
            node_id=data.get("node_id", 0),
            vector_id=data.get("vector_id", ""),
            field=data.get("field", ""),
            distance=data.get("distance", 0.0),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class DebugNodeInfo:
    node_id: int
    vector_id: str = ""
    field: str = ""
    level: int = 0
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)
    neighbors: list[DebugNeighbor] = dataclasses.field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DebugNodeInfo":
        return cls(
            node_id=data.get("node_id", 0),
            vector_id=data.get("vector_id", ""),
            field=data.get("field", ""),
            level=data.get("level", 0),
            metadata=dict(data.get("metadata") or {}),
            neighbors=[DebugNeighbor.from_dict(n) for n in data.get("neighbors") or []],
        )


@dataclass
class DebugNodeInfoResponse(GenericResponse):
    data: DebugNodeInfo | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DebugNodeInfoResponse":
        payload = data.get("data")
        return cls(
            success=bool(data.get("success", False)),
            message=data.get("message", ""),
            data=DebugNodeInfo.from_dict(payload) if payload else None,
        )


@dataclass
class DebugLevelInfo:
    level: int
    node_count: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DebugLevelInfo":
        return cls(level=data.get("level", 0), node_count=data.get("node_count", 0))


@dataclass
class DebugLevelsResponse(GenericResponse):
    """Graph levels per indexed field."""
    data: dict[str, list[DebugLevelInfo]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DebugLevelsResponse":
        return cls(
            success=bool(data.get("success", False)),
            message=data.get("message", ""),
            data={
                name: [DebugLevelInfo.from_dict(level) for level in levels or []]
                for name, levels in (data.get("data") or {}).items()
            },
        )


@dataclass
class DebugNodesAtLevelResponse(GenericResponse):
    data: dict[str, list[int]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DebugNodesAtLevelResponse":
        return cls(
            success=bool(data.get("success", False)),
            message=data.get("message", ""),
            data={name: list(nodes or []) for name, nodes in (data.get("data") or {}).items()},
        )


@dataclass
class DebugVectorNode:
    id: int
    field: str = ""
    vector: list[float] = dataclasses.field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DebugVectorNode":
        return cls(id=data.get("id", 0), field=data.get("field", ""), vector=list(data.get("vector") or []))


@dataclass
class DebugReferenceNode:
    id: str
    metadata: dict[str, Any] = field(default_factory=dict)
    nodes: list[DebugVectorNode] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DebugReferenceNode":
        return cls(
            id=data.get("id", ""),
            metadata=dict(data.get("metadata") or {}),
            nodes=[DebugVectorNode.from_dict(n) for n in data.get("nodes") or []],
        )


@dataclass
class DebugReferenceNodeResponse(GenericResponse):
    data: DebugReferenceNode | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DebugReferenceNodeResponse":
        payload = data.get("data")
        return cls(
            success=bool(data.get("success", False)),
            message=data.get("message", ""),
            data=DebugReferenceNode.from_dict(payload) if payload else None,
        )


# ============================================================================
# Oplog
# ============================================================================

@dataclass(frozen=True)
class Record:
    """Full document snapshot attached to insert/update oplog entries."""
    id: str
    fields: dict[str, Any] = field(default_factory=dict)
    keyword_fields: dict[str, bool] = field(default_factory=dict)
    metadata_fields: dict[str, Any] = field(default_factory=dict)
    vectors: dict[str, list[float]] = field(default_factory=dict)
    dist: float | None = None
    nodes: list[str] = field(default_factory=list)
    expiry: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Record":
        return cls(
            id=data.get("id", ""),
            fields=dict(data.get("fields") or {}),
            keyword_fields=dict(data.get("keyword_fields") or {}),
            metadata_fields=dict(data.get("metadata_fields") or {}),
            vectors=dict(data.get("vectors") or {}),
            dist=data.get("dist"),
            nodes=list(data.get("nodes") or []),
            expiry=data.get("expiry"),
        )


@dataclass(frozen=True)
class OplogEntry:
    """
    One durable change record.

    Payload fields depend on ``op_type``: insert/update carry the document
    (``fields``, ``vectors``, ``metadata``, ``full_doc``), delete carries only
    ``doc_id`` and rename carries ``new_name``.
    """
    lsn: int
    op_type: OpType | str
    collection: str = ""
    doc_id: str = ""
    timestamp: str = ""
    vector: list[float] | None = None
    metadata: dict[str, Any] | None = None
    keywords: list[str] | None = None
    full_doc: Record | None = None
    vectors: dict[str, list[float]] | None = None
    fields: dict[str, Any] | None = None
    keyword_fields: dict[str, bool] | None = None
    metadata_fields: dict[str, Any] | None = None
    expiry: int | None = None
    new_name: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OplogEntry":
        full_doc = data.get("full_doc")
        return cls(
            lsn=int(data.get("lsn", 0)),
            op_type=_coerce(OpType, data.get("op_type", "")),
            collection=data.get("collection", ""),
            doc_id=data.get("doc_id", ""),
            timestamp=data.get("timestamp", ""),
            vector=data.get("vector"),
            metadata=data.get("metadata"),
            keywords=data.get("keywords"),
            full_doc=Record.from_dict(full_doc) if full_doc else None,
            vectors=data.get("vectors"),
            fields=data.get("fields"),
            keyword_fields=data.get("keyword_fields"),
            metadata_fields=data.get("metadata_fields"),
            expiry=data.get("expiry"),
            new_name=data.get("new_name"),
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["op_type"] = self.op_type.value if isinstance(self.op_type, Enum) else self.op_type
        return _compact(data)


@dataclass
class GetOplogResponse(GenericResponse):
    entries: list[OplogEntry] = field(default_factory=list)
    last_lsn: int = 0
    count: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GetOplogResponse":
        return cls(
            success=bool(data.get("success", False)),
            message=data.get("message", ""),
            entries=[OplogEntry.from_dict(e) for e in data.get("entries") or []],
            last_lsn=int(data.get("last_lsn") or 0),
            count=int(data.get("count") or 0),
        )


@dataclass
class OplogStatusResponse(GenericResponse):
    """Point-in-time oplog snapshot for one collection."""
    last_lsn: int = 0
    retention_lsn: int = 0
    replica_count: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OplogStatusResponse":
        return cls(
            success=bool(data.get("success", False)),
            message=data.get("message", ""),
            last_lsn=int(data.get("last_lsn") or 0),
            retention_lsn=int(data.get("retention_lsn") or 0),
            replica_count=int(data.get("replica_count") or 0),
        )


# ============================================================================
# Discovery
# ============================================================================

@dataclass
class ReplicaInfo:
    """Replica as tracked by the discovery registry."""
    id: str
    address: str = ""
    is_healthy: bool = False
    # Traffic gate: no traffic is routed to a syncing replica
    is_syncing: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReplicaInfo":
        return cls(
            id=data.get("id", ""),
            address=data.get("address", ""),
            is_healthy=bool(data.get("is_healthy", False)),
            is_syncing=bool(data.get("is_syncing", False)),
        )


@dataclass
class RegistryStatus:
    write_replica: ReplicaInfo | None = None
    read_replicas: list[ReplicaInfo] = field(default_factory=list)
    available_count: int = 0
    total_count: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RegistryStatus":
        write_replica = data.get("write_replica")
        return cls(
            write_replica=ReplicaInfo.from_dict(write_replica) if write_replica else None,
            read_replicas=[ReplicaInfo.from_dict(r) for r in data.get("read_replicas") or []],
            available_count=data.get("available_count", 0),
            total_count=data.get("total_count", 0),
        )


@dataclass
class ProxyStats:
    active_proxies: int = 0
    targets: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProxyStats":
        return cls(active_proxies=data.get("active_proxies", 0), targets=list(data.get("targets") or []))


@dataclass
class DiscoveryStats:
    registry: RegistryStatus = field(default_factory=RegistryStatus)
    proxy: ProxyStats = field(default_factory=ProxyStats)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiscoveryStats":
        return cls(
            registry=RegistryStatus.from_dict(data.get("registry") or {}),
            proxy=ProxyStats.from_dict(data.get("proxy") or {}),
        )


@dataclass
class RegisterToDiscoveryRequest:
    account_id: str
    address: str
    id: str
    is_read: bool = False
    is_write: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
