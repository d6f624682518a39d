# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

from .aem_json import aem_json_to_sheets, sheets_to_aem_json
from .parser import doc_to_json, json_to_doc
from .sheet_store import data_to_store, sheets_to_store, store_to_sheets

__all__ = [
    'aem_json_to_sheets', 'sheets_to_aem_json',
    'doc_to_json', 'json_to_doc',
    'data_to_store', 'sheets_to_store', 'store_to_sheets',
]
