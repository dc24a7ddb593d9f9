"""
Metadata Store

Key-value storage for overlay documents and management credentials.
Values are JSON-serializable. Keys are grouped into buckets (databases).

Two implementations:
- InMemoryMetadataStore - process-local, used by tests and single-shot tools
- FileMetadataStore - JSON file per key, atomic write-and-rename
"""

import json
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import quote, unquote

from .exceptions import StoreError

# State directory - will be created if it doesn't exist
STATE_DIR = Path(os.environ.get("OVERLAY_GATEWAY_STATE_DIR", "/opt/overlay-gateway/data/state"))


class MetadataStore(Protocol):
    """Key-value metadata store used by the overlay service"""

    def get(self, bucket: str, key: str) -> Any | None:
        ...

    def put(self, bucket: str, key: str, value: Any) -> None:
        ...

    def delete(self, bucket: str, key: str) -> bool:
        ...

    def list_keys(self, bucket: str, prefix: str = "") -> list[str]:
        ...


class InMemoryMetadataStore:
    """Dictionary-backed metadata store"""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, bucket: str, key: str) -> Any | None:
        with self._lock:
            value = self._data.get(bucket, {}).get(key)
        # Callers get their own copy
        return json.loads(json.dumps(value)) if value is not None else None

    def put(self, bucket: str, key: str, value: Any) -> None:
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Value is not JSON-serializable: {e}", bucket, key) from e

        with self._lock:
            self._data.setdefault(bucket, {})[key] = json.loads(encoded)

    def delete(self, bucket: str, key: str) -> bool:
        with self._lock:
            return self._data.get(bucket, {}).pop(key, None) is not None

    def list_keys(self, bucket: str, prefix: str = "") -> list[str]:
        with self._lock:
            return sorted(k for k in self._data.get(bucket, {}) if k.startswith(prefix))


class FileMetadataStore:
    """
    File-based metadata store.

    Each key is a JSON file under <state_dir>/<bucket>/. Writes go to a
    temp file first and are renamed into place, so readers never see a
    partially written document.
    """

    def __init__(self, state_dir: Path | str | None = None):
        self.state_dir = Path(state_dir) if state_dir else STATE_DIR
        self._lock = threading.Lock()

    def _get_path(self, bucket: str, key: str) -> Path:
        """Get file path for a bucket/key pair"""
        return self.state_dir / quote(bucket, safe="") / f"{quote(key, safe='')}.json"

    def get(self, bucket: str, key: str) -> Any | None:
        """
        Read a value.

        Returns:
            Stored value, or None if the key does not exist

        Raises:
            StoreError: If the file exists but cannot be read or decoded
        """
        path = self._get_path(bucket, key)
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise StoreError(f"Cannot read {path.name}: {e}", bucket, key) from e

        return document.get("value")

    def put(self, bucket: str, key: str, value: Any) -> None:
        """Write a value atomically"""
        path = self._get_path(bucket, key)
        document = {
            "value": value,
            "_updated_at": datetime.now(timezone.utc).isoformat(),
        }

        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                temp_path = path.with_suffix(".tmp")
                with open(temp_path, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
                temp_path.replace(path)
            except (TypeError, ValueError, OSError) as e:
                raise StoreError(f"Cannot write {path.name}: {e}", bucket, key) from e

    def delete(self, bucket: str, key: str) -> bool:
        """
        Delete a key.

        Returns:
            True if deleted, False if not found
        """
        path = self._get_path(bucket, key)
        with self._lock:
            if path.exists():
                path.unlink()
                return True
        return False

    def list_keys(self, bucket: str, prefix: str = "") -> list[str]:
        """List keys of a bucket, optionally filtered by prefix"""
        bucket_dir = self.state_dir / quote(bucket, safe="")
        if not bucket_dir.exists():
            return []
        keys = (unquote(p.stem) for p in bucket_dir.glob("*.json"))
        return sorted(k for k in keys if k.startswith(prefix))
