"""Shilp CLI - manage collections, ingest and search data, follow the oplog."""

import logging
import sys
import threading
from pathlib import Path

import click
import orjson

from .client import ShilpClient
from .config import DEFAULT_CONFIG_PATH, create_default_config, load_config
from .discovery import DiscoveryClient
from .models import (
    AddCollectionRequest,
    FileReaderOptions,
    IngestRequest,
    IngestSourceType,
    InsertRecordRequest,
    ReplicaType,
    SearchRequest,
    StorageBackendType,
    SyncStatus,
)
from .sync import FileCheckpoint, ReplicaSync
from .transport import ShilpError


STORAGE_TYPES = {"file": StorageBackendType.FILE, "s3": StorageBackendType.S3}
REPLICA_TYPES = {
    "read": ReplicaType.READ_REPLICA,
    "write": ReplicaType.WRITE_REPLICA,
    "single": ReplicaType.SINGLE_NODE,
}


class ShilpGroup(click.Group):
    """Top-level group that reports client errors instead of tracebacks."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except ShilpError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)


def echo_json(value):
    click.echo(orjson.dumps(value, option=orjson.OPT_INDENT_2).decode())


def parse_json(ctx, param, value):
    """click callback turning a JSON option into a Python object."""
    if value is None:
        return None
    try:
        return orjson.loads(value)
    except orjson.JSONDecodeError as e:
        raise click.BadParameter(f"invalid JSON: {e}")


def parse_weights(ctx, param, values):
    weights = {}
    for item in values:
        name, sep, weight = item.partition("=")
        if not sep:
            raise click.BadParameter(f"expected FIELD=WEIGHT, got {item!r}")
        try:
            weights[name] = float(weight)
        except ValueError:
            raise click.BadParameter(f"weight for {name!r} is not a number")
    return weights or None


def get_client(ctx) -> ShilpClient:
    obj = ctx.find_root().obj
    if "client" not in obj:
        client = ShilpClient.from_config(obj["config"], session=obj.get("session"))
        ctx.find_root().call_on_close(client.close)
        obj["client"] = client
    return obj["client"]


def get_discovery(ctx) -> DiscoveryClient:
    obj = ctx.find_root().obj
    if "discovery" not in obj:
        cfg = obj["config"]
        discovery = DiscoveryClient(
            cfg.discovery.base_url,
            timeout=cfg.discovery.timeout_seconds,
            session=obj.get("session"),
        )
        ctx.find_root().call_on_close(discovery.close)
        obj["discovery"] = discovery
    return obj["discovery"]


@click.group(cls=ShilpGroup)
@click.option("--config", "config_path", default=None, help="Config file path", envvar="SHILP_CONFIG")
@click.option("--url", default=None, help="Shilp server URL (overrides config)")
@click.option("--timeout", type=float, default=None, help="Request timeout in seconds")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, config_path, url, timeout, verbose):
    """Shilp - client for the Shilp document and vector search server."""
    ctx.ensure_object(dict)
    cfg = load_config(config_path)
    if url:
        cfg.server.base_url = url
    if timeout:
        cfg.server.timeout_seconds = timeout

    logging.basicConfig(
        level=logging.DEBUG if verbose else cfg.logging.level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    ctx.obj["config"] = cfg
    ctx.obj["config_path"] = config_path


@cli.command()
@click.pass_context
def health(ctx):
    """Check server liveness and version."""
    echo_json(get_client(ctx).health.health_check())


# ============================================================================
# Collection Commands
# ============================================================================

@cli.group()
def collections():
    """Manage collections and records."""
    pass


@collections.command("list")
@click.option("--names", is_flag=True, help="Print only collection names")
@click.pass_context
def collections_list(ctx, names):
    """List collections."""
    result = get_client(ctx).collections.list_collections()
    if names:
        for name in result.names():
            click.echo(name)
    else:
        echo_json(result)


@collections.command("create")
@click.argument("name")
@click.option("--storage-type", type=click.Choice(list(STORAGE_TYPES)), default=None)
@click.option("--reference-storage-type", type=click.Choice(list(STORAGE_TYPES)), default=None)
@click.option("--no-reference-storage", is_flag=True, help="Do not keep source documents")
@click.option("--metadata-storage", is_flag=True, help="Enable metadata storage")
@click.pass_context
def collections_create(ctx, name, storage_type, reference_storage_type, no_reference_storage, metadata_storage):
    """Create a collection."""
    req = AddCollectionRequest(
        name=name,
        no_reference_storage=no_reference_storage or None,
        has_metadata_storage=metadata_storage or None,
        storage_type=STORAGE_TYPES.get(storage_type),
        reference_storage_type=STORAGE_TYPES.get(reference_storage_type),
    )
    echo_json(get_client(ctx).collections.add_collection(req))


@collections.command("drop")
@click.argument("name")
@click.pass_context
def collections_drop(ctx, name):
    """Drop a collection."""
    echo_json(get_client(ctx).collections.drop_collection(name))


@collections.command("delete-record")
@click.argument("name")
@click.argument("record_id")
@click.pass_context
def collections_delete_record(ctx, name, record_id):
    """Delete one record from a collection."""
    echo_json(get_client(ctx).collections.delete_record(name, record_id))


@collections.command("expiry-cleanup")
@click.argument("name")
@click.pass_context
def collections_expiry_cleanup(ctx, name):
    """Remove expired records."""
    echo_json(get_client(ctx).collections.expiry_cleanup(name))


@collections.command("flush")
@click.argument("name")
@click.pass_context
def collections_flush(ctx, name):
    """Flush a collection to storage."""
    echo_json(get_client(ctx).collections.flush_collection(name))


@collections.command("load")
@click.argument("name")
@click.pass_context
def collections_load(ctx, name):
    """Load a collection into memory."""
    echo_json(get_client(ctx).collections.load_collection(name))


@collections.command("unload")
@click.argument("name")
@click.pass_context
def collections_unload(ctx, name):
    """Unload a collection from memory."""
    echo_json(get_client(ctx).collections.unload_collection(name))


@collections.command("export")
@click.argument("name")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="Output file")
@click.pass_context
def collections_export(ctx, name, output):
    """Export a collection to a file."""
    with get_client(ctx).collections.export_collection(name) as stream:
        target = Path(output or stream.filename or f"{name}.export")
        written = stream.save(target)
    click.echo(f"Exported {name} to {target} ({written} bytes)")


@collections.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def collections_import(ctx, path):
    """Import a collection from an exported file."""
    echo_json(get_client(ctx).collections.import_collection(path))


@collections.command("rename")
@click.argument("old_name")
@click.argument("new_name")
@click.pass_context
def collections_rename(ctx, old_name, new_name):
    """Rename a collection."""
    echo_json(get_client(ctx).collections.rename_collection(old_name, new_name))


@collections.command("reindex")
@click.argument("name")
@click.pass_context
def collections_reindex(ctx, name):
    """Rebuild a collection's index (debug)."""
    echo_json(get_client(ctx).collections.reindex_collection(name))


@collections.command("insert")
@click.argument("name")
@click.option("--record", required=True, callback=parse_json, help="Record as a JSON object")
@click.option("--id", "record_id", default=None, help="Record id")
@click.option("--field", "-f", "fields", multiple=True, help="Field to embed (repeatable)")
@click.option("--keyword-field", "-k", "keyword_fields", multiple=True, help="Keyword field (repeatable)")
@click.option("--expiry", type=int, default=None, help="Expiry as a unix timestamp")
@click.option("--provider", default=None, help="Embedding provider")
@click.option("--model", default=None, help="Embedding model")
@click.pass_context
def collections_insert(ctx, name, record, record_id, fields, keyword_fields, expiry, provider, model):
    """Insert one record."""
    if not isinstance(record, dict):
        raise click.BadParameter("record must be a JSON object", param_hint="--record")
    req = InsertRecordRequest(
        collection=name,
        record=record,
        id=record_id,
        expiry=expiry,
        fields=list(fields) or None,
        keyword_fields=list(keyword_fields) or None,
        embedding_provider=provider,
        model=model,
    )
    echo_json(get_client(ctx).collections.insert_record(req))


# ============================================================================
# Data Commands
# ============================================================================

@cli.group()
def data():
    """Ingest and search data."""
    pass


@data.command("ingest")
@click.argument("collection")
@click.option("--field", "-f", "fields", multiple=True, required=True, help="Field to embed (repeatable)")
@click.option("--file-path", default=None, help="Uploaded file to ingest")
@click.option("--database", default=None, help="MongoDB database")
@click.option("--mongo-collection", default=None, help="MongoDB collection")
@click.option("--query", callback=parse_json, default=None, help="MongoDB query as JSON")
@click.option("--keyword-field", "-k", "keyword_fields", multiple=True, help="Keyword field (repeatable)")
@click.option("--id-field", default=None)
@click.option("--expiry-field", default=None)
@click.option("--provider", default=None, help="Embedding provider")
@click.option("--model", default=None, help="Embedding model")
@click.option("--batch-size", type=int, default=None, help="Ingestion batch size")
@click.pass_context
def data_ingest(ctx, collection, fields, file_path, database, mongo_collection, query,
                keyword_fields, id_field, expiry_field, provider, model, batch_size):
    """Bulk ingest from an uploaded file or MongoDB."""
    if bool(file_path) == bool(database or mongo_collection):
        raise click.UsageError("use either --file-path or --database/--mongo-collection")

    req = IngestRequest(
        collection_name=collection,
        fields=list(fields),
        file_path=file_path,
        source_type=IngestSourceType.FILE if file_path else IngestSourceType.MONGODB,
        database_name=database,
        mongo_collection=mongo_collection,
        query=query,
        keyword_fields=list(keyword_fields) or None,
        id_field=id_field,
        expiry_field=expiry_field,
        embedding_provider=provider,
        embedding_model=model,
        ingestion_batch_size=batch_size,
    )
    echo_json(get_client(ctx).data.ingest_data(req))


@data.command("search")
@click.argument("collection")
@click.argument("query")
@click.option("--field", "-f", "fields", multiple=True, help="Field to search (repeatable)")
@click.option("--limit", "-n", type=int, default=10, help="Number of results")
@click.option("--weight", "-w", "weights", multiple=True, callback=parse_weights, help="FIELD=WEIGHT (repeatable)")
@click.option("--max-distance", type=float, default=None)
@click.option("--ids", is_flag=True, help="Print only result ids")
@click.pass_context
def data_search(ctx, collection, query, fields, limit, weights, max_distance, ids):
    """Search a collection."""
    req = SearchRequest(
        collection=collection,
        query=query,
        fields=list(fields) or None,
        limit=limit,
        weights=weights,
        max_distance=max_distance,
    )
    result = get_client(ctx).data.search_data(req)
    if ids:
        for record_id in result.ids():
            click.echo(record_id)
    else:
        echo_json(result)


@data.command("sources")
@click.pass_context
def data_sources(ctx):
    """List ingestion sources."""
    echo_json(get_client(ctx).data.list_ingest_sources())


@data.command("models")
@click.pass_context
def data_models(ctx):
    """List embedding providers and models."""
    echo_json(get_client(ctx).data.list_embedding_models())


@data.command("ingest-stats")
@click.argument("collection")
@click.pass_context
def data_ingest_stats(ctx, collection):
    """Follow ingestion statistics (Ctrl+C to stop)."""
    with get_client(ctx).data.stream_ingest_stats(collection) as events:
        try:
            for line in events:
                click.echo(line)
        except KeyboardInterrupt:
            pass


# ============================================================================
# Storage Commands
# ============================================================================

@cli.group()
def storage():
    """Browse and upload ingestion sources."""
    pass


@storage.command("list")
@click.argument("path", required=False)
@click.option("--source", type=click.Choice([s.value for s in IngestSourceType]), default=None)
@click.pass_context
def storage_list(ctx, path, source):
    """List uploads storage or MongoDB databases/collections."""
    echo_json(get_client(ctx).data.list_storage(path, source))


@storage.command("read")
@click.argument("path")
@click.option("--source", type=click.Choice([s.value for s in IngestSourceType]), default=None)
@click.option("--rows", type=int, default=0, help="Number of rows")
@click.option("--skip", type=int, default=0, help="Rows to skip")
@click.option("--filter", "mongo_filter", callback=parse_json, default=None, help="MongoDB filter as JSON")
@click.pass_context
def storage_read(ctx, path, source, rows, skip, mongo_filter):
    """Preview rows of a file or MongoDB collection."""
    options = FileReaderOptions(source=source, mongo_filter=mongo_filter, skip=skip, limit=rows)
    echo_json(get_client(ctx).data.read_document(path, options))


@storage.command("upload")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def storage_upload(ctx, path):
    """Upload a data file."""
    echo_json(get_client(ctx).data.upload_data_file(path))


# ============================================================================
# Debug Commands
# ============================================================================

@cli.group()
def debug():
    """Inspect a collection's vector index."""
    pass


@debug.command("distance")
@click.argument("collection")
@click.argument("field")
@click.argument("node_id", type=int)
@click.argument("text")
@click.pass_context
def debug_distance(ctx, collection, field, node_id, text):
    """Distance between TEXT and a node."""
    echo_json(get_client(ctx).debug.get_collection_distance(collection, field, node_id, text))


@debug.command("node")
@click.argument("collection")
@click.argument("field")
@click.argument("node_id", type=int)
@click.pass_context
def debug_node(ctx, collection, field, node_id):
    """Show a node and its neighbors."""
    echo_json(get_client(ctx).debug.get_collection_node_info(collection, field, node_id))


@debug.command("neighbors")
@click.argument("collection")
@click.argument("field")
@click.argument("node_id", type=int)
@click.argument("level", type=int)
@click.option("--limit", type=int, default=None)
@click.option("--offset", type=int, default=None)
@click.pass_context
def debug_neighbors(ctx, collection, field, node_id, level, limit, offset):
    """Show a node's neighbors at a level."""
    echo_json(get_client(ctx).debug.get_collection_node_neighbors_at_level(
        collection, field, node_id, level, limit=limit, offset=offset,
    ))


@debug.command("levels")
@click.argument("collection")
@click.pass_context
def debug_levels(ctx, collection):
    """Show graph levels and node counts."""
    echo_json(get_client(ctx).debug.get_collection_levels(collection))


@debug.command("level-nodes")
@click.argument("collection")
@click.argument("level", type=int)
@click.pass_context
def debug_level_nodes(ctx, collection, level):
    """List node ids at a level."""
    echo_json(get_client(ctx).debug.get_collection_nodes_at_level(collection, level))


@debug.command("reference-node")
@click.argument("collection")
@click.argument("node_id", type=int)
@click.pass_context
def debug_reference_node(ctx, collection, node_id):
    """Show a reference document and its vector nodes."""
    echo_json(get_client(ctx).debug.get_collection_node_by_reference_node_id(collection, node_id))


# ============================================================================
# Oplog Commands
# ============================================================================

@cli.group()
def oplog():
    """Read the oplog and manage replicas."""
    pass


def _replica_id(ctx, replica_id):
    replica_id = replica_id or ctx.find_root().obj["config"].replica.replica_id
    if not replica_id:
        raise click.UsageError("replica id required (argument or replica.replica_id in config)")
    return replica_id


@oplog.command("entries")
@click.option("--collection", "-c", default="", help="Collection (default: all)")
@click.option("--after", "after_lsn", type=int, default=0, help="Return entries after this LSN")
@click.option("--limit", "-n", type=int, default=None, help="Maximum entries")
@click.option("--all", "drain", is_flag=True, help="Page until the log is drained")
@click.pass_context
def oplog_entries(ctx, collection, after_lsn, limit, drain):
    """Fetch oplog entries."""
    client = get_client(ctx)
    if drain:
        for entry in client.oplog.iter_oplog_entries(collection, after_lsn, limit):
            click.echo(orjson.dumps(entry.to_dict()).decode())
    else:
        echo_json(client.oplog.get_oplog_entries(collection, after_lsn, limit))


@oplog.command("status")
@click.argument("collection")
@click.pass_context
def oplog_status(ctx, collection):
    """Show oplog status for a collection."""
    echo_json(get_client(ctx).oplog.get_oplog_status(collection))


@oplog.command("register")
@click.argument("replica_id", required=False)
@click.pass_context
def oplog_register(ctx, replica_id):
    """Register a replica for retention tracking."""
    echo_json(get_client(ctx).oplog.register_replica(_replica_id(ctx, replica_id)))


@oplog.command("unregister")
@click.argument("replica_id", required=False)
@click.pass_context
def oplog_unregister(ctx, replica_id):
    """Unregister a replica."""
    echo_json(get_client(ctx).oplog.unregister_replica(_replica_id(ctx, replica_id)))


@oplog.command("heartbeat")
@click.argument("collection")
@click.argument("replica_id")
@click.argument("lsn", type=int)
@click.pass_context
def oplog_heartbeat(ctx, collection, replica_id, lsn):
    """Report a replica's last applied LSN."""
    echo_json(get_client(ctx).oplog.update_replica_lsn(collection, replica_id, lsn))


@oplog.command("follow")
@click.option("--collection", "-c", default=None, help="Collection (default: from config)")
@click.option("--replica-id", default=None, help="Replica id (default: from config)")
@click.option("--checkpoint", "checkpoint_path", default=None, help="Checkpoint file")
@click.option("--batch-size", type=int, default=None)
@click.option("--interval", type=float, default=None, help="Poll interval in seconds")
@click.option("--rounds", type=int, default=None, help="Stop after this many rounds")
@click.pass_context
def oplog_follow(ctx, collection, replica_id, checkpoint_path, batch_size, interval, rounds):
    """Follow the oplog as a registered replica, printing entries as JSON lines."""
    replica_cfg = ctx.find_root().obj["config"].replica

    def apply(entry):
        click.echo(orjson.dumps(entry.to_dict()).decode())

    sync = ReplicaSync(
        get_client(ctx).oplog,
        _replica_id(ctx, replica_id),
        apply,
        collection=replica_cfg.collection if collection is None else collection,
        checkpoint=FileCheckpoint(checkpoint_path or replica_cfg.checkpoint_path),
        batch_size=batch_size or replica_cfg.batch_size,
        poll_interval=replica_cfg.poll_interval_seconds if interval is None else interval,
    )

    stop_event = threading.Event()
    with sync:
        try:
            sync.run(stop_event, max_rounds=rounds)
        except KeyboardInterrupt:
            stop_event.set()
    click.echo(f"Stopped at LSN {sync.last_lsn}", err=True)


# ============================================================================
# Discovery Commands
# ============================================================================

@cli.group()
def discovery():
    """Discovery control plane."""
    pass


@discovery.command("stats")
@click.argument("account_id")
@click.pass_context
def discovery_stats(ctx, account_id):
    """Show registry and proxy statistics."""
    echo_json(get_discovery(ctx).get_shilp_stats(account_id))


@discovery.command("sync-status")
@click.argument("account_id")
@click.argument("address")
@click.argument("status", type=click.Choice([s.value for s in SyncStatus]))
@click.pass_context
def discovery_sync_status(ctx, account_id, address, status):
    """Mark a replica as syncing or ready."""
    echo_json(get_discovery(ctx).update_shilp_sync_status(account_id, address, status))


@discovery.command("register")
@click.argument("account_id")
@click.argument("address")
@click.argument("service_id")
@click.option("--type", "replica_type", type=click.Choice(list(REPLICA_TYPES)), default="single")
@click.pass_context
def discovery_register(ctx, account_id, address, service_id, replica_type):
    """Register a Shilp node."""
    echo_json(get_discovery(ctx).register_shilp_service(
        account_id, address, service_id, REPLICA_TYPES[replica_type],
    ))


@discovery.command("unregister")
@click.argument("account_id")
@click.argument("address")
@click.argument("service_id")
@click.option("--type", "replica_type", type=click.Choice(list(REPLICA_TYPES)), default="single")
@click.pass_context
def discovery_unregister(ctx, account_id, address, service_id, replica_type):
    """Unregister a Shilp node."""
    echo_json(get_discovery(ctx).unregister_shilp_service(
        account_id, address, service_id, REPLICA_TYPES[replica_type],
    ))


@discovery.command("tei-register")
@click.argument("account_id")
@click.argument("address")
@click.argument("service_id")
@click.pass_context
def discovery_tei_register(ctx, account_id, address, service_id):
    """Register an embedding inference service."""
    echo_json(get_discovery(ctx).register_tei_service(account_id, address, service_id))


@discovery.command("tei-unregister")
@click.argument("account_id")
@click.argument("address")
@click.argument("service_id")
@click.pass_context
def discovery_tei_unregister(ctx, account_id, address, service_id):
    """Unregister an embedding inference service."""
    echo_json(get_discovery(ctx).unregister_tei_service(account_id, address, service_id))


# ============================================================================
# Config Commands
# ============================================================================

@cli.group()
def config():
    """Manage configuration."""
    pass


@config.command("init")
@click.option("--path", default=None, help="Config file path")
def config_init(path):
    """Create default configuration file."""
    config_path = create_default_config(path)
    click.echo(f"Created config at: {config_path}")


@config.command("show")
@click.pass_context
def config_show(ctx):
    """Show current configuration."""
    click.echo(ctx.find_root().obj["config"].to_yaml())


@config.command("path")
def config_path():
    """Show default config file path."""
    click.echo(DEFAULT_CONFIG_PATH)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
