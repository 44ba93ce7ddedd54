"""Oplog endpoints for replica synchronization."""

import logging
import threading
from typing import Iterator, Sequence

from .models import GenericResponse, GetOplogResponse, OplogEntry, OplogStatusResponse, UpdateReplicaLSNResponse
from .transport import (
    LSNRegressionError,
    OplogOrderError,
    ResourceGroup,
    Transport,
    ValidationError,
)

logger = logging.getLogger("shilp.oplog")

OPLOG_PATH = "/api/oplog/v1"
REGISTER_PATH = f"{OPLOG_PATH}/register"
# The server API has historically accepted unregistration on the register
# path; override with "/api/oplog/v1/unregister" where the server exposes it.
DEFAULT_UNREGISTER_PATH = REGISTER_PATH


def check_entry_order(entries: Sequence[OplogEntry], after_lsn: int):
    """Raise OplogOrderError unless every lsn is > after_lsn and strictly ascending."""
    previous = after_lsn
    for entry in entries:
        if entry.lsn <= previous:
            raise OplogOrderError(
                f"Oplog entry LSN {entry.lsn} is not after LSN {previous} "
                f"(requested entries after {after_lsn})"
            )
        previous = entry.lsn


class OplogAPI(ResourceGroup):
    """
    Replica synchronization over the server's oplog.

    Lifecycle of a replica:
        register_replica(id) -> update_replica_lsn(...) repeatedly -> unregister_replica(id)

    Reading entries and status does not require registration. Registration
    only tells the server which watermarks to respect when trimming the log.

    Heartbeats are checked client-side: a lower LSN than one already reported
    through this instance for the same (collection, replica) raises
    LSNRegressionError. The check does not survive a process restart, so the
    caller must persist its applied LSN and never report below it.
    """

    def __init__(self, transport: Transport, unregister_path: str = DEFAULT_UNREGISTER_PATH):
        super().__init__(transport)
        self.unregister_path = unregister_path
        self._lock = threading.Lock()
        self._replica_locks: dict[str, threading.Lock] = {}
        self._reported: dict[tuple[str, str], int] = {}

    def _replica_lock(self, replica_id: str) -> threading.Lock:
        with self._lock:
            lock = self._replica_locks.get(replica_id)
            if lock is None:
                lock = self._replica_locks[replica_id] = threading.Lock()
            return lock

    def get_oplog_entries(
        self,
        collection: str,
        after_lsn: int,
        limit: int | None = None,
    ) -> GetOplogResponse:
        """
        Fetch oplog entries with lsn > after_lsn, in ascending order.

        Args:
            collection: Collection to read; empty reads entries for all collections
            after_lsn: Exclusive lower bound; 0 reads from the beginning
            limit: Maximum entries; omitted when None or <= 0 (server default)

        Entries must be applied in the returned order. Delivery is
        at-least-once: after a crash, re-fetch from the last persisted LSN and
        apply idempotently by doc_id/op_type.
        """
        if after_lsn < 0:
            raise ValidationError("after_lsn cannot be negative")

        params = {"after_lsn": after_lsn}
        if collection:
            params["collection"] = collection
        if limit is not None and limit > 0:
            params["limit"] = limit

        return GetOplogResponse.from_dict(
            self._transport.request("GET", f"{OPLOG_PATH}/", params=params)
        )

    def iter_oplog_entries(
        self,
        collection: str,
        after_lsn: int,
        batch_size: int | None = None,
    ) -> Iterator[OplogEntry]:
        """
        Page through every entry after ``after_lsn`` until the log is drained.

        Each page is checked for ascending order before it is yielded.
        """
        while True:
            response = self.get_oplog_entries(collection, after_lsn, batch_size)
            if not response.entries:
                return
            check_entry_order(response.entries, after_lsn)
            yield from response.entries
            after_lsn = response.entries[-1].lsn

    def update_replica_lsn(self, collection: str, replica_id: str, lsn: int) -> UpdateReplicaLSNResponse:
        """
        Report the replica's last applied LSN (heartbeat).

        Repeating the same LSN is allowed and acts as a keep-alive. Heartbeats
        for one replica are serialized within this client.
        """
        if not replica_id:
            raise ValidationError("replica_id cannot be empty")
        if lsn < 0:
            raise ValidationError("lsn cannot be negative")

        key = (collection, replica_id)
        with self._replica_lock(replica_id):
            with self._lock:
                reported = self._reported.get(key)
            if reported is not None and lsn < reported:
                raise LSNRegressionError(collection, replica_id, lsn, reported)

            body = {"collection": collection, "replica_id": replica_id, "lsn": lsn}
            result = UpdateReplicaLSNResponse.from_dict(
                self._transport.request("POST", f"{OPLOG_PATH}/heartbeat", body)
            )

            if result.success:
                with self._lock:
                    self._reported[key] = lsn
            else:
                logger.warning(f"Heartbeat for replica {replica_id} at LSN {lsn} rejected: {result.message}")

        return result

    def reported_lsn(self, collection: str, replica_id: str) -> int | None:
        """Highest LSN accepted by the server for this replica through this client."""
        with self._lock:
            return self._reported.get((collection, replica_id))

    def register_replica(self, replica_id: str) -> GenericResponse:
        """Register a replica for oplog retention tracking. Safe to repeat."""
        if not replica_id:
            raise ValidationError("replica_id cannot be empty")

        with self._replica_lock(replica_id):
            result = GenericResponse.from_dict(
                self._transport.request("POST", REGISTER_PATH, {"replica_id": replica_id})
            )
        logger.info(f"Registered replica {replica_id}: {result.message or result.success}")
        return result

    def unregister_replica(self, replica_id: str) -> GenericResponse:
        """
        Unregister a replica so the server may trim entries it no longer needs.

        Forgets the heartbeat watermarks tracked for this replica.
        """
        if not replica_id:
            raise ValidationError("replica_id cannot be empty")

        if self.unregister_path == REGISTER_PATH:
            logger.warning(
                f"Unregistering replica {replica_id} through {REGISTER_PATH}; "
                "set unregister_path if the server exposes a dedicated endpoint"
            )

        with self._replica_lock(replica_id):
            result = GenericResponse.from_dict(
                self._transport.request("POST", self.unregister_path, {"replica_id": replica_id})
            )
            if result.success:
                with self._lock:
                    for key in [k for k in self._reported if k[1] == replica_id]:
                        del self._reported[key]
        logger.info(f"Unregistered replica {replica_id}: {result.message or result.success}")
        return result

    def get_oplog_status(self, collection: str) -> OplogStatusResponse:
        """Snapshot of last_lsn, retention_lsn and replica_count for a collection."""
        if not collection:
            raise ValidationError("collection cannot be empty")
        return OplogStatusResponse.from_dict(
            self._transport.request("GET", f"{OPLOG_PATH}/status", params={"collection": collection})
        )
