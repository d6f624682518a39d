# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Shared constants: reserved CRDT root keys and the reserved markup vocabulary.
"""

# CRDT root keys
CONTENT_KEY = "content"
METADATA_KEY = "daMetadata"
METADATA_ORDER_KEY = "daMetadataOrder"
SHEETS_KEY = "sheets"

EMPTY_DOC = """
<body>
  <header></header>
  <main><div></div></main>
  <footer></footer>
</body>
"""

# Reserved classes
METADATA_CLASS = "da-metadata"
BLOCK_GROUP_START = "block-group-start"
BLOCK_GROUP_END = "block-group-end"

# Diff marking
DIFF_ADDED_TAG = "da-diff-added"
DIFF_DELETED_TAG = "da-diff-deleted"
LEGACY_TAG_NAMES = {
    "da-loc-added": DIFF_ADDED_TAG,
    "da-loc-deleted": DIFF_DELETED_TAG,
}
MDAST_ATTRIBUTE = "data-mdast"
MDAST_IGNORE = "ignore"
DATA_ID_ATTRIBUTE = "data-id"

SECTION_BREAK_TEXT = "---"
PICTURE_MEDIA = "(min-width: 600px)"

# Sidecar keys whose markup label differs from the key itself
METADATA_LABELS = {"locKeys": "da-loc-keys"}

MIN_SHEET_DIMENSIONS = 20
DEFAULT_COLUMN_WIDTH = "50"
