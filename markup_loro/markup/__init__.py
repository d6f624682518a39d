# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

from .block_table import block_to_table, read_block, table_to_block
from .builder import DocumentBuilder
from .reader import Element, MarkupComment, MarkupReader, MarkupText, SoupMarkupReader
from .writer import MarkupWriter

__all__ = [
    'block_to_table', 'read_block', 'table_to_block',
    'DocumentBuilder', 'MarkupWriter',
    'Element', 'MarkupComment', 'MarkupReader', 'MarkupText', 'SoupMarkupReader',
]
