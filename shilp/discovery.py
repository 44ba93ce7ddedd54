"""Discovery control-plane client for service registration and replica routing."""

import logging

import requests

from .models import (
    DiscoveryStats,
    GenericResponse,
    RegisterToDiscoveryRequest,
    ReplicaType,
    SyncStatus,
)
from .transport import Transport, ValidationError

logger = logging.getLogger("shilp.discovery")


class DiscoveryClient:
    """
    Client for the discovery service that fronts Shilp replicas.

    Usage:
        from shilp import DiscoveryClient, ReplicaType

        with DiscoveryClient("http://discovery:8080") as discovery:
            discovery.register_shilp_service("acct", "10.0.0.5:3000", "node-1", ReplicaType.READ_REPLICA)
            stats = discovery.get_shilp_stats("acct")
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        self._transport = Transport(base_url, timeout=timeout, session=session)

    @property
    def transport(self) -> Transport:
        return self._transport

    def get_shilp_stats(self, account_id: str) -> DiscoveryStats:
        """Registry and proxy statistics for an account."""
        if not account_id:
            raise ValidationError("account_id cannot be empty")
        return DiscoveryStats.from_dict(
            self._transport.request("GET", "/control/shilp/stats", params={"account_id": account_id})
        )

    def update_shilp_sync_status(
        self,
        account_id: str,
        address: str,
        status: SyncStatus | str,
    ) -> GenericResponse:
        """Mark a replica as syncing (no traffic) or ready."""
        try:
            status = SyncStatus(status)
        except ValueError as e:
            raise ValidationError(f"invalid sync status - {status}") from e
        body = {"account_id": account_id, "address": address, "status": status.value}
        return GenericResponse.from_dict(
            self._transport.request("POST", "/control/shilp/sync-status", body)
        )

    def register_shilp_service(
        self,
        account_id: str,
        address: str,
        service_id: str,
        replica_type: ReplicaType,
    ) -> list[GenericResponse]:
        """
        Register a Shilp node with discovery.

        A single node serves both roles and is registered twice, first as a
        read replica and then as the write replica.
        """
        return self._register_shilp(account_id, address, service_id, replica_type, register=True)

    def unregister_shilp_service(
        self,
        account_id: str,
        address: str,
        service_id: str,
        replica_type: ReplicaType,
    ) -> list[GenericResponse]:
        return self._register_shilp(account_id, address, service_id, replica_type, register=False)

    def _register_shilp(
        self,
        account_id: str,
        address: str,
        service_id: str,
        replica_type: ReplicaType,
        register: bool,
    ) -> list[GenericResponse]:
        try:
            replica_type = ReplicaType(replica_type)
        except ValueError as e:
            raise ValidationError(f"invalid replica type - {replica_type}") from e
        if replica_type == ReplicaType.SINGLE_NODE:
            roles = [(True, False), (False, True)]
        elif replica_type == ReplicaType.READ_REPLICA:
            roles = [(True, False)]
        else:
            roles = [(False, True)]

        endpoint = "register" if register else "unregister"
        results = []
        for is_read, is_write in roles:
            payload = RegisterToDiscoveryRequest(
                account_id=account_id,
                address=address,
                id=service_id,
                is_read=is_read,
                is_write=is_write,
            )
            results.append(GenericResponse.from_dict(
                self._transport.request("POST", f"/control/shilp/{endpoint}", payload.to_dict())
            ))
        logger.info(f"{endpoint} {replica_type.name.lower()} {service_id} at {address}")
        return results

    def register_tei_service(self, account_id: str, address: str, service_id: str) -> GenericResponse:
        """Register a text-embedding-inference service (always read-only)."""
        return self._tei("register", account_id, address, service_id)

    def unregister_tei_service(self, account_id: str, address: str, service_id: str) -> GenericResponse:
        return self._tei("unregister", account_id, address, service_id)

    def _tei(self, endpoint: str, account_id: str, address: str, service_id: str) -> GenericResponse:
        payload = RegisterToDiscoveryRequest(
            account_id=account_id,
            address=address,
            id=service_id,
            is_read=True,
            is_write=False,
        )
        return GenericResponse.from_dict(
            self._transport.request("POST", f"/control/tei/{endpoint}", payload.to_dict())
        )

    def close(self):
        self._transport.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
