"""Replica follower: pull oplog entries, apply them in order and checkpoint progress."""

import logging
import os
import threading
from pathlib import Path
from typing import Callable

import orjson

from .models import OplogEntry
from .oplog import OplogAPI, check_entry_order
from .transport import DecodeError, ValidationError

logger = logging.getLogger("shilp.sync")

ALL_COLLECTIONS_KEY = "*"


class MemoryCheckpoint:
    """Keeps applied LSNs in memory; progress is lost when the process exits."""

    def __init__(self, initial: dict[str, int] | None = None):
        self._lsns = dict(initial or {})
        self._lock = threading.Lock()

    def load(self, collection: str) -> int:
        with self._lock:
            return self._lsns.get(collection or ALL_COLLECTIONS_KEY, 0)

    def save(self, collection: str, lsn: int):
        with self._lock:
            self._lsns[collection or ALL_COLLECTIONS_KEY] = lsn


class FileCheckpoint:
    """
    Persists the last applied LSN per collection in a JSON file.

    Writes go to a temporary file that replaces the checkpoint in one step,
    so a crash leaves either the old or the new LSN on disk.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def _read(self) -> dict[str, int]:
        if not self.path.exists():
            return {}
        content = self.path.read_bytes()
        if not content.strip():
            return {}
        try:
            data = orjson.loads(content)
        except orjson.JSONDecodeError as e:
            raise DecodeError(f"Corrupt checkpoint file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise DecodeError(f"Corrupt checkpoint file {self.path}: expected an object")
        return data

    def load(self, collection: str) -> int:
        with self._lock:
            return int(self._read().get(collection or ALL_COLLECTIONS_KEY, 0))

    def save(self, collection: str, lsn: int):
        with self._lock:
            data = self._read()
            data[collection or ALL_COLLECTIONS_KEY] = lsn

            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_name(self.path.name + ".tmp")
            tmp_path.write_bytes(orjson.dumps(data, option=orjson.OPT_INDENT_2))
            os.replace(tmp_path, self.path)


class ReplicaSync:
    """
    Follows a collection's oplog on behalf of one replica.

    Each round fetches entries after the checkpointed LSN, applies them in
    order through ``apply`` and saves the checkpoint after every applied
    entry. When registered, the round ends with a heartbeat carrying the
    checkpointed LSN, which doubles as a keep-alive when nothing changed.

    ``apply`` may see an entry again after a crash between applying and
    checkpointing it, so it must be idempotent per doc_id/op_type.

    Usage:
        sync = ReplicaSync(client.oplog, "replica-1", apply_entry,
                           collection="docs", checkpoint=FileCheckpoint("lsn.json"))
        with sync:
            sync.run(stop_event)
    """

    def __init__(
        self,
        oplog: OplogAPI,
        replica_id: str,
        apply: Callable[[OplogEntry], None],
        collection: str = "",
        checkpoint: MemoryCheckpoint | FileCheckpoint | None = None,
        batch_size: int = 100,
        poll_interval: float = 1.0,
    ):
        if not replica_id:
            raise ValidationError("replica_id cannot be empty")
        if poll_interval < 0:
            raise ValidationError("poll_interval cannot be negative")

        self.oplog = oplog
        self.replica_id = replica_id
        self.apply = apply
        self.collection = collection
        self.checkpoint = checkpoint if checkpoint is not None else MemoryCheckpoint()
        self.batch_size = batch_size
        self.poll_interval = poll_interval
        self._registered = False

    @property
    def registered(self) -> bool:
        return self._registered

    @property
    def last_lsn(self) -> int:
        """Last LSN applied and checkpointed."""
        return self.checkpoint.load(self.collection)

    def register(self):
        result = self.oplog.register_replica(self.replica_id)
        if not result.success:
            logger.warning(
                f"Replica {self.replica_id} registration rejected, following without heartbeats: "
                f"{result.message}"
            )
            return
        self._registered = True

    def unregister(self):
        if not self._registered:
            return
        self.oplog.unregister_replica(self.replica_id)
        self._registered = False

    def sync_once(self) -> int:
        """
        Run one fetch/apply/heartbeat round.

        Returns:
            Number of entries applied
        """
        after_lsn = self.checkpoint.load(self.collection)
        response = self.oplog.get_oplog_entries(self.collection, after_lsn, self.batch_size)
        if not response.success:
            logger.warning(f"Oplog fetch after LSN {after_lsn} failed: {response.message}")
            return 0

        entries = response.entries
        check_entry_order(entries, after_lsn)

        lsn = after_lsn
        for entry in entries:
            self.apply(entry)
            self.checkpoint.save(self.collection, entry.lsn)
            lsn = entry.lsn

        if entries:
            logger.debug(f"Applied {len(entries)} entries, LSN {after_lsn} -> {lsn}")

        if self._registered:
            self.oplog.update_replica_lsn(self.collection, self.replica_id, lsn)

        return len(entries)

    def run(self, stop_event: threading.Event | None = None, max_rounds: int | None = None) -> int:
        """
        Keep syncing until ``stop_event`` is set or ``max_rounds`` rounds ran.

        Full batches are followed immediately by the next fetch; otherwise the
        loop waits ``poll_interval`` seconds. Errors are not retried.

        Returns:
            Total number of entries applied
        """
        stop_event = stop_event or threading.Event()
        total = 0
        rounds = 0

        while not stop_event.is_set():
            applied = self.sync_once()
            total += applied
            rounds += 1

            if max_rounds is not None and rounds >= max_rounds:
                break
            if applied == 0 or applied < (self.batch_size or 0):
                stop_event.wait(self.poll_interval)

        logger.info(f"Replica {self.replica_id} stopped at LSN {self.last_lsn} ({total} entries applied)")
        return total

    def __enter__(self):
        self.register()
        return self

    def __exit__(self, *args):
        self.unregister()
