"""Vector index introspection endpoints."""

from .models import (
    DebugDistanceResponse,
    DebugLevelsResponse,
    DebugNodeInfoResponse,
    DebugNodesAtLevelResponse,
    DebugReferenceNodeResponse,
)
from .transport import ResourceGroup, path_segment

DEBUG_PATH = "/api/collections/v1/debug"


class DebugAPI(ResourceGroup):
    """Read-only views of a collection's graph index: nodes, levels and distances."""

    def _path(self, collection_name: str, *segments) -> str:
        parts = [DEBUG_PATH, path_segment(collection_name)]
        parts.extend(path_segment(s) for s in segments)
        return "/".join(parts)

    def get_collection_distance(
        self,
        collection_name: str,
        field: str,
        node_id: int,
        text: str,
    ) -> DebugDistanceResponse:
        """Distance between ``text``'s embedding and a node's vector."""
        return DebugDistanceResponse.from_dict(
            self._transport.request(
                "GET",
                self._path(collection_name, field, "distance", node_id),
                params={"text": text},
            )
        )

    def get_collection_node_info(
        self,
        collection_name: str,
        field: str,
        node_id: int,
    ) -> DebugNodeInfoResponse:
        return DebugNodeInfoResponse.from_dict(
            self._transport.request("GET", self._path(collection_name, field, "nodes", node_id))
        )

    def get_collection_node_neighbors_at_level(
        self,
        collection_name: str,
        field: str,
        node_id: int,
        level: int,
        limit: int | None = None,
        offset: int | None = None,
    ) -> DebugNodeInfoResponse:
        return DebugNodeInfoResponse.from_dict(
            self._transport.request(
                "GET",
                self._path(collection_name, field, "nodes", node_id, "neighbors", level),
                params={"limit": limit, "offset": offset},
            )
        )

    def get_collection_levels(self, collection_name: str) -> DebugLevelsResponse:
        return DebugLevelsResponse.from_dict(
            self._transport.request("GET", self._path(collection_name, "levels"))
        )

    def get_collection_nodes_at_level(self, collection_name: str, level: int) -> DebugNodesAtLevelResponse:
        return DebugNodesAtLevelResponse.from_dict(
            self._transport.request("GET", self._path(collection_name, "levels", level))
        )

    def get_collection_node_by_reference_node_id(
        self,
        collection_name: str,
        node_id: int,
    ) -> DebugReferenceNodeResponse:
        return DebugReferenceNodeResponse.from_dict(
            self._transport.request(
                "GET", self._path(collection_name, "nodes", "reference_node", node_id)
            )
        )
