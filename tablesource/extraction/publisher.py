"""
Schema publication into the pipeline-scoped argument store.
"""

import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from tablesource.core.config import DEFAULT_ARGUMENT_PREFIX
from tablesource.core.logging import LoggerMixin
from .exceptions import DuplicatePublicationError, ExtractionError
from .models import TableIdentifier, TableSchema


class SchemaArgumentStore(ABC):
    """Run-scoped string key/value side channel read by later pipeline stages."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value under a key."""
        pass

    @abstractmethod
    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Read a value, ``default`` when the key is absent."""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """All keys currently set."""
        pass

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


class InMemoryArgumentStore(SchemaArgumentStore):
    """Argument store for hosts running every stage in one process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with self._lock:
            return self._values.get(key, default)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._values)


class JsonFileArgumentStore(SchemaArgumentStore):
    """
    Argument store persisted as one JSON object on disk.

    Lets a stage in another process read the arguments of this run. Every
    ``set`` rewrites the file.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ExtractionError(f"Failed to read argument file {self.path}: {e}")
        if not isinstance(data, dict):
            raise ExtractionError(f"Argument file {self.path} must contain a JSON object")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, sort_keys=True)
        tmp_path.replace(self.path)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._write(data)

    def replace(self, values: Dict[str, str]) -> None:
        """Swap the whole file for ``values`` in one write."""
        with self._lock:
            self._write(dict(values))

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with self._lock:
            return self._load().get(key, default)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._load())

    def clear(self) -> None:
        """Start a new run with an empty file."""
        with self._lock:
            if self.path.exists():
                self.path.unlink()


class SchemaPublisher(LoggerMixin):
    """
    Writes each table's schema under ``<prefix><table name>``.

    Each table may be published once per publisher; a second publication, or
    a key already present in the store, is a DuplicatePublicationError.
    """

    def __init__(self, prefix: str = DEFAULT_ARGUMENT_PREFIX):
        self.prefix = prefix
        self._published: Set[str] = set()

    def key_for(self, table: TableIdentifier) -> str:
        """Argument key of a table."""
        return f"{self.prefix}{table.name}"

    def publish(self, store: SchemaArgumentStore, table: TableIdentifier, schema: TableSchema) -> str:
        """
        Publish one table schema.

        Returns:
            The argument key written

        Raises:
            DuplicatePublicationError: If the key was already published
        """
        key = self.key_for(table)
        self._check_unpublished(store, key, table)
        store.set(key, schema.to_json())
        self._published.add(key)
        self.logger.debug(f"Published schema of {table.qualified_name} as {key}")
        return key

    def publish_all(self, store: SchemaArgumentStore,
                    items: Iterable[Tuple[TableIdentifier, TableSchema]]) -> List[str]:
        """
        Publish several schemas, all or nothing.

        Every key is checked before the first write, so a duplicate leaves the
        store untouched.
        """
        items = list(items)
        pending: Set[str] = set()
        for table, _ in items:
            key = self.key_for(table)
            if key in pending:
                raise DuplicatePublicationError(
                    f"Table name {table.name} resolves to argument {key} more than once"
                )
            self._check_unpublished(store, key, table)
            pending.add(key)

        keys = [self.publish(store, table, schema) for table, schema in items]
        self.logger.info(f"Published {len(keys)} table schemas")
        return keys

    def read(self, store: SchemaArgumentStore, table: TableIdentifier) -> Optional[TableSchema]:
        """Read a published schema back, None when absent."""
        payload = store.get(self.key_for(table))
        return TableSchema.from_json(payload) if payload is not None else None

    def is_published(self, table: TableIdentifier) -> bool:
        return self.key_for(table) in self._published

    def _check_unpublished(self, store: SchemaArgumentStore, key: str, table: TableIdentifier) -> None:
        if key in self._published or key in store:
            raise DuplicatePublicationError(
                f"Schema of {table.qualified_name} already published as {key}",
                details={"key": key}
            )
