"""Shilp API client composing the endpoint groups over one transport."""

import requests

from .collection import CollectionsAPI
from .config import ShilpConfig, load_config
from .data import DataAPI
from .debug import DebugAPI
from .health import HealthAPI
from .oplog import DEFAULT_UNREGISTER_PATH, OplogAPI
from .transport import Transport


class ShilpClient:
    """
    Python client for the Shilp API server.

    Usage:
        from shilp import ShilpClient

        with ShilpClient("http://localhost:3000") as client:
            client.health.health_check()
            client.collections.list_collections()
            client.data.search_data(SearchRequest(collection="docs", query="hello"))
            client.oplog.get_oplog_entries("docs", after_lsn=0)

    Calls hold no per-call state, so one instance can be shared between
    threads.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
        unregister_path: str = DEFAULT_UNREGISTER_PATH,
    ):
        """
        Initialize the client.

        Args:
            base_url: Base URL of the Shilp API server
            timeout: Request timeout in seconds
            session: Optional requests session to reuse connections from
            unregister_path: Endpoint used by oplog.unregister_replica
        """
        self._transport = Transport(base_url, timeout=timeout, session=session)
        self.health = HealthAPI(self._transport)
        self.collections = CollectionsAPI(self._transport)
        self.data = DataAPI(self._transport)
        self.debug = DebugAPI(self._transport)
        self.oplog = OplogAPI(self._transport, unregister_path=unregister_path)

    @classmethod
    def from_config(
        cls,
        config: ShilpConfig | None = None,
        session: requests.Session | None = None,
    ) -> "ShilpClient":
        """Build a client from configuration (loaded from the default locations if omitted)."""
        config = config or load_config()
        return cls(
            config.server.base_url,
            timeout=config.server.timeout_seconds,
            session=session,
            unregister_path=config.replica.unregister_path,
        )

    @property
    def base_url(self) -> str:
        return self._transport.base_url

    @property
    def transport(self) -> Transport:
        return self._transport

    def close(self):
        """Close the client's pooled connections."""
        self._transport.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
