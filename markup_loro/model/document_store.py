# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Document store port and its Loro adapter

The transcoder never talks to a CRDT library directly. It reads and writes
through the small `DocumentStore` protocol below, so the document model can be
backed by a `loro.LoroDoc` in production and by a plain fake in tests.

ARCHITECTURE:
=============

DocumentStore
├── get_sequence(name)  -> SequenceStore   ordered list of JSON-like values
├── get_mapping(name)   -> MappingStore    key/value sidecar, insertion ordered
└── transaction()       -> context manager, one commit per mutation batch

LoroDocumentStore maps these onto loro containers:
- sequence  -> doc.get_list(name), one plain dict value per top-level node
- mapping   -> doc.get_map(name) plus doc.get_list(name + "Order") holding the
               keys in first-insertion order (map iteration order is not
               guaranteed to follow insertion). Keys written to the map by a
               collaborator that bypassed the order list come last, sorted.

All mutations made inside `transaction()` are committed together with
`doc.commit()`, so peers observe one update per build.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Protocol, Tuple, runtime_checkable

from loro import ExportMode, LoroDoc

logger = logging.getLogger(__name__)


@runtime_checkable
class SequenceStore(Protocol):
    def __len__(self) -> int: ...

    def items(self) -> List[Any]: ...

    def insert(self, index: int, value: Any) -> None: ...

    def delete(self, index: int, count: int) -> None: ...

    def clear(self) -> None: ...


@runtime_checkable
class MappingStore(Protocol):
    def __len__(self) -> int: ...

    def items(self) -> List[Tuple[str, Any]]: ...

    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


@runtime_checkable
class DocumentStore(Protocol):
    def get_sequence(self, name: str) -> SequenceStore: ...

    def get_mapping(self, name: str) -> MappingStore: ...

    def transaction(self): ...


class LoroSequence:
    """Ordered list of JSON-like values stored in a LoroList"""

    def __init__(self, doc: LoroDoc, name: str):
        self.name = name
        self._list = doc.get_list(name)

    def __len__(self) -> int:
        return len(self.items())

    def items(self) -> List[Any]:
        value = self._list.get_deep_value()
        return list(value) if value else []

    def insert(self, index: int, value: Any) -> None:
        self._list.insert(index, value)

    def delete(self, index: int, count: int) -> None:
        if count > 0:
            self._list.delete(index, count)

    def clear(self) -> None:
        self.delete(0, len(self))


class LoroMapping:
    """String keyed sidecar stored in a LoroMap, with a companion key order list"""

    def __init__(self, doc: LoroDoc, name: str, order_name: Optional[str] = None):
        self.name = name
        self._map = doc.get_map(name)
        self._order = doc.get_list(order_name or f"{name}Order")

    def _values(self) -> Dict[str, Any]:
        value = self._map.get_deep_value()
        return dict(value) if value else {}

    def _keys(self) -> List[str]:
        value = self._order.get_deep_value()
        return list(value) if value else []

    def __len__(self) -> int:
        return len(self._values())

    def items(self) -> List[Tuple[str, Any]]:
        values = self._values()
        ordered = []
        for key in self._keys():
            if key in values and key not in ordered:
                ordered.append(key)
        ordered += sorted(key for key in values if key not in ordered)
        return [(key, values[key]) for key in ordered]

    def get(self, key: str) -> Optional[Any]:
        return self._values().get(key)

    def set(self, key: str, value: Any) -> None:
        self._map.insert(key, value)
        keys = self._keys()
        if key not in keys:
            self._order.insert(len(keys), key)

    def delete(self, key: str) -> None:
        if key in self._values():
            self._map.delete(key)
        keys = self._keys()
        if key in keys:
            self._order.delete(keys.index(key), 1)


class LoroDocumentStore:
    """DocumentStore backed by a loro.LoroDoc"""

    def __init__(self, doc: LoroDoc):
        self.doc = doc

    def get_sequence(self, name: str) -> LoroSequence:
        return LoroSequence(self.doc, name)

    def get_mapping(self, name: str) -> LoroMapping:
        return LoroMapping(self.doc, name)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        yield
        self.doc.commit()


def as_document_store(document: Any) -> DocumentStore:
    """
    Adapt a caller supplied document to the DocumentStore protocol

    Args:
        document: A loro.LoroDoc or any object implementing DocumentStore

    Returns:
        The store to read and write through

    Raises:
        TypeError: If the document is neither
    """
    if isinstance(document, LoroDoc):
        return LoroDocumentStore(document)
    if isinstance(document, DocumentStore):
        return document
    raise TypeError(f"Expected a LoroDoc or DocumentStore, got {type(document).__name__}")


def export_snapshot(doc: LoroDoc) -> bytes:
    """Export the full document state"""
    return doc.export(ExportMode.Snapshot())


def import_snapshot(snapshot: bytes) -> LoroDoc:
    """Create a new document from a snapshot produced by export_snapshot"""
    doc = LoroDoc()
    doc.import_(snapshot)
    logger.debug(f"Imported snapshot of {len(snapshot)} bytes")
    return doc
