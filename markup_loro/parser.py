# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Module level entry points

build() and write() are independent: either may be called at any time on any
document. Both use a default DocumentBuilder / MarkupWriter; construct those
directly to inject another markup reader or other root keys.
"""

from typing import Any, Optional

from .constants import EMPTY_DOC
from .markup.block_table import table_to_block
from .markup.builder import DocumentBuilder
from .markup.writer import MarkupWriter

__all__ = ["build", "write", "table_to_block", "EMPTY_DOC"]

_builder: Optional[DocumentBuilder] = None


def _default_builder() -> DocumentBuilder:
    global _builder
    if _builder is None:
        _builder = DocumentBuilder()
    return _builder


def build(markup: Optional[str], document: Any) -> None:
    """
    Replace the content of document with the content of markup

    Args:
        markup: Wire-format markup; None or "" builds the empty document
        document: A loro.LoroDoc or DocumentStore
    """
    _default_builder().build(markup, document)


def write(document: Any) -> str:
    """Render the content of document as wire-format markup"""
    return MarkupWriter().write(document)
