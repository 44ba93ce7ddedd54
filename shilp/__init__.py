"""Shilp - Python client for the Shilp document and vector search server."""

from .client import ShilpClient
from .collection import CollectionsAPI
from .config import ShilpConfig, load_config, create_default_config
from .data import DataAPI
from .debug import DebugAPI
from .discovery import DiscoveryClient
from .health import HealthAPI
from .models import (
    AddCollectionRequest,
    AttrType,
    CompoundFilter,
    CompoundSort,
    FileReaderOptions,
    FilterExpression,
    FilterOp,
    GenericResponse,
    IngestRequest,
    IngestSourceType,
    InsertRecordRequest,
    OpType,
    OplogEntry,
    ReplicaType,
    SearchRequest,
    SortExpression,
    SortOrder,
    StorageBackendType,
    SyncStatus,
)
from .oplog import OplogAPI
from .sync import FileCheckpoint, MemoryCheckpoint, ReplicaSync
from .transport import (
    ApiError,
    DecodeError,
    DownloadStream,
    EventStream,
    LSNRegressionError,
    OplogOrderError,
    RequestCancelledError,
    RequestTimeoutError,
    ShilpError,
    Transport,
    TransportError,
    ValidationError,
)

__version__ = "0.1.0"
__all__ = [
    # Clients
    "ShilpClient",
    "DiscoveryClient",
    "CollectionsAPI",
    "DataAPI",
    "DebugAPI",
    "HealthAPI",
    "OplogAPI",
    "Transport",
    # Streams
    "DownloadStream",
    "EventStream",
    # Replica sync
    "ReplicaSync",
    "FileCheckpoint",
    "MemoryCheckpoint",
    # Models
    "AddCollectionRequest",
    "AttrType",
    "CompoundFilter",
    "CompoundSort",
    "FileReaderOptions",
    "FilterExpression",
    "FilterOp",
    "GenericResponse",
    "IngestRequest",
    "IngestSourceType",
    "InsertRecordRequest",
    "OpType",
    "OplogEntry",
    "ReplicaType",
    "SearchRequest",
    "SortExpression",
    "SortOrder",
    "StorageBackendType",
    "SyncStatus",
    # Errors
    "ShilpError",
    "TransportError",
    "RequestTimeoutError",
    "RequestCancelledError",
    "ApiError",
    "DecodeError",
    "ValidationError",
    "LSNRegressionError",
    "OplogOrderError",
    # Config
    "ShilpConfig",
    "load_config",
    "create_default_config",
]
