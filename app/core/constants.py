"""
Constants
Centralised storage for the template document format: markers and metadata keys.
"""
METADATA_MARKER = "---"
HEADING_MARKER = "##"
SECTION_SEPARATOR = "\n\n"

REQUIRED_METADATA_KEYS = ("name",)
RECOGNIZED_METADATA_KEYS = ("name", "about", "title", "labels", "assignees")
LIST_METADATA_KEYS = ("labels", "assignees")

TEMPLATE_EXTENSIONS = (".md",)
