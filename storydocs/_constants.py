"""Common literal values used across storydocs.

These constants keep token prefixes, sentinel identifiers and index metadata
centralized so the registry, the context and tests import the same values
without drifting. Intended for internal use within the storydocs package.

Examples
--------
>>> from storydocs import _constants
>>> _constants.STORY_BLOCK_ID_TEMPLATE.format(story_id="button--primary")
'story--button--primary'
>>> _constants.CURRENT_SELECTION
'.'
"""

STORY_INDEX_VERSION = 4
STORY_ENTRY_TYPE = "story"
PLACEHOLDER_STORY_NAME = "Name"

IMPORT_PATH_PREFIX = "importPath"
TITLE_PREFIX = "title"
EXPORT_NAME_PREFIX = "export"

CURRENT_SELECTION = "."
UNKNOWN_STORY_ID = "unknown"
DEFAULT_EXPORT = "default"

EXTERNAL_DOCS_TYPE = "external"
EXTERNAL_DOCS_ID = "external-docs"
EXTERNAL_DOCS_TITLE = "External"
EXTERNAL_DOCS_NAME = "Docs"

STORY_BLOCK_ID_TEMPLATE = "story--{story_id}"
DEFAULT_IFRAME_HEIGHT = 100
