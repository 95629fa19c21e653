"""
Funnel store backends.

JsonFileFunnelStore keeps each owner's funnels in a JSON file on disk.
SupabaseFunnelStore keeps them in the `saved_funnels` table of a Supabase
project. create_store() picks one from the storage settings.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from supabase import create_client

from .persistence import PersistenceError

logger = logging.getLogger(__name__)

FUNNELS_TABLE = "saved_funnels"


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


class JsonFileFunnelStore:
    """
    Local store: one `<owner>.json` file per owner holding a list of
    records. Creating a record with an existing id replaces it.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _owner_file(self, owner_id: str) -> Path:
        safe = "".join(c if c.isalnum() or c in "-_." else "_" for c in owner_id)
        return self.directory / f"{safe or 'default'}.json"

    def _read(self, owner_id: str) -> list[dict]:
        path = self._owner_file(owner_id)
        if not path.exists():
            return []
        try:
            with open(path, 'r', encoding='utf-8') as f:
                records = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read funnels from {path}: {e}")
            raise PersistenceError(f"Could not read saved funnels: {e}") from e

        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise PersistenceError(f"Saved funnels file {path} is malformed")
        return records

    def _write(self, owner_id: str, records: list[dict]):
        path = self._owner_file(owner_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error(f"Failed to write funnels to {path}: {e}")
            raise PersistenceError(f"Could not write saved funnels: {e}") from e

    def list(self, owner_id: str) -> list[dict]:
        return self._read(owner_id)

    def create(self, record: dict, owner_id: str) -> dict:
        records = [r for r in self._read(owner_id) if r.get("id") != record["id"]]
        stored = dict(record, updated_at=utc_timestamp())
        records.append(stored)
        self._write(owner_id, records)
        return stored

    def delete(self, funnel_id: str, owner_id: str) -> bool:
        records = self._read(owner_id)
        kept = [r for r in records if r.get("id") != funnel_id]
        if len(kept) == len(records):
            return False
        self._write(owner_id, kept)
        return True


class SupabaseFunnelStore:
    """
    Cloud store backed by the `saved_funnels` table.

    Rows carry the graph split into `nodes` and `connections` JSON
    columns and are scoped to the owner through `user_id`.
    """

    def __init__(self, client):
        self._client = client

    @classmethod
    def from_credentials(cls, url: Optional[str] = None, key: Optional[str] = None) -> "SupabaseFunnelStore":
        """
        Connect with a project URL and key.

        Falls back to the SUPABASE_URL and SUPABASE_KEY environment
        variables.
        """
        url = url or os.environ.get("SUPABASE_URL")
        key = key or os.environ.get("SUPABASE_KEY")
        if not url or not key:
            raise PersistenceError(
                "Supabase URL and key required. "
                "Set them in settings or the SUPABASE_URL and SUPABASE_KEY environment variables."
            )
        return cls(create_client(url, key))

    @staticmethod
    def _row_to_record(row: dict) -> dict:
        return {
            "id": row.get("id"),
            "name": row.get("name", ""),
            "graph": {
                "nodes": row.get("nodes") or [],
                "connections": row.get("connections") or [],
            },
            "updated_at": row.get("updated_at"),
        }

    def list(self, owner_id: str) -> list[dict]:
        try:
            response = self._client.table(FUNNELS_TABLE)\
                .select("*")\
                .eq("user_id", owner_id)\
                .order("updated_at", desc=True)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to list funnels: {e}")
            raise PersistenceError(f"Could not list saved funnels: {e}") from e

        return [self._row_to_record(row) for row in (response.data or [])]

    def create(self, record: dict, owner_id: str) -> dict:
        graph = record.get("graph", {})
        row = {
            "id": record["id"],
            "user_id": owner_id,
            "name": record["name"],
            "nodes": graph.get("nodes", []),
            "connections": graph.get("connections", []),
            "updated_at": utc_timestamp(),
        }
        try:
            response = self._client.table(FUNNELS_TABLE)\
                .upsert(row, on_conflict="id")\
                .execute()
        except Exception as e:
            logger.error(f"Failed to save funnel {record['id']}: {e}")
            raise PersistenceError(f"Could not save funnel: {e}") from e

        if response.data:
            return self._row_to_record(response.data[0])
        return self._row_to_record(row)

    def delete(self, funnel_id: str, owner_id: str) -> bool:
        try:
            response = self._client.table(FUNNELS_TABLE)\
                .delete()\
                .eq("id", funnel_id)\
                .eq("user_id", owner_id)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to delete funnel {funnel_id}: {e}")
            raise PersistenceError(f"Could not delete funnel: {e}") from e

        return bool(response.data)


def create_store(storage, client=None):
    """
    Create the funnel store configured in the storage settings.

    Args:
        storage: StorageSettings
        client: Optional pre-configured Supabase client

    Returns:
        JsonFileFunnelStore or SupabaseFunnelStore
    """
    backend = (storage.backend or "local").lower()

    if backend == "supabase":
        if client is not None:
            return SupabaseFunnelStore(client)
        logger.info("Using Supabase funnel store")
        return SupabaseFunnelStore.from_credentials(storage.supabase_url, storage.supabase_key)

    if backend != "local":
        logger.warning(f"Unknown storage backend '{storage.backend}', using local files")
    directory = storage.get_local_dir()
    logger.info(f"Using local funnel store in {directory}")
    return JsonFileFunnelStore(directory)
