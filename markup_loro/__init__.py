# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Markup Loro - wire-format markup <-> structured documents stored in Loro CRDTs
"""

from .constants import EMPTY_DOC
from .parser import build, table_to_block, write
from .sheet import doc_to_json, json_to_doc

__all__ = ["build", "write", "table_to_block", "EMPTY_DOC", "json_to_doc", "doc_to_json"]
