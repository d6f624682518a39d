# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""Sheet JSON <-> CRDT document"""

from typing import Any, Dict, Union

from .aem_json import aem_json_to_sheets, sheets_to_aem_json
from .sheet_store import sheets_to_store, store_to_sheets


def json_to_doc(value: Union[str, Dict[str, Any]], document: Any) -> None:
    """Replace the sheets stored in document with the sheets of a JSON document"""
    sheets_to_store(aem_json_to_sheets(value), document, delete_existing=True)


def doc_to_json(document: Any) -> str:
    """Publish the sheets stored in document as JSON text"""
    return sheets_to_aem_json(store_to_sheets(document))
