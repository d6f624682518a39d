# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

from .document_store import DocumentStore, LoroDocumentStore, as_document_store, export_snapshot, import_snapshot
from .nodes import DiffMarker, Mark, MarkType, Node, node_from_dict

__all__ = [
    'DocumentStore', 'LoroDocumentStore', 'as_document_store', 'export_snapshot', 'import_snapshot',
    'DiffMarker', 'Mark', 'MarkType', 'Node', 'node_from_dict',
]
