"""
Template Parser
===============
Converts a raw issue-template document into a structured Template.

Document layout:
    ---
    name: Bug report
    about: Create a report to help us improve
    title: ''
    labels: bug
    assignees: ''
    ---
    Optional preamble (discarded).

    ## Operating system
    Prompt text shown to the reporter.

Pipeline:
    1. Split document into lines (BOM and CRLF tolerant)
    2. Locate the metadata block between two '---' marker lines
    3. Load the block as YAML; fall back to a line scanner for plain text YAML rejects
    4. Validate required keys, ignore unrecognized ones
    5. Scan the body for '##' headings, collect prompt text per section
    6. Reject headings that normalize to an already declared heading

Contract:
    - PURE: no I/O, no shared state; same text → same Template, always.
    - STRICT: structural defects raise, nothing partial is returned.
"""
import re
import logging
from typing import Any, Optional

import yaml

from app.core.constants import (
    HEADING_MARKER,
    LIST_METADATA_KEYS,
    METADATA_MARKER,
    RECOGNIZED_METADATA_KEYS,
    REQUIRED_METADATA_KEYS,
)
from app.core.errors import DuplicateSectionError, MalformedMetadataError
from app.models.template import Template, TemplateMetadata, TemplateSection
from app.utils.text import normalize_heading, split_list_value, trim_blank_lines

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Line Patterns
# ---------------------------------------------------------------------------
# Level-2 ATX heading: "## Text", optional closing hashes. "###" and "##Text" are prompt text.
_HEADING = re.compile(
    r"^ {0,3}" + re.escape(HEADING_MARKER) + r"[ \t]+(\S.*?)(?:[ \t]+#+)?[ \t]*$"
)

# Fenced code block delimiter; headings inside a fence are prompt text
_FENCE = re.compile(r"^ {0,3}(`{3,}|~{3,})")

_LIST_ITEM = re.compile(r"^-(?:\s+(.*))?$")


# ---------------------------------------------------------------------------
# Document Splitting
# ---------------------------------------------------------------------------
def _split_document(document_text: str) -> tuple[list[str], int, list[str]]:
    """
    Separate the metadata block from the body.

    Returns
    -------
    tuple[list[str], int, list[str]]
        (metadata lines, 1-based line number of the first metadata line, body lines)
    """
    lines = document_text.lstrip("\ufeff").splitlines()

    start = 0
    while start < len(lines) and not lines[start].strip():
        start += 1

    if start == len(lines) or lines[start].strip() != METADATA_MARKER:
        raise MalformedMetadataError(
            f"document must open with a '{METADATA_MARKER}' metadata block",
            line=min(start, len(lines) - 1) + 1 if lines else None,
        )

    for end in range(start + 1, len(lines)):
        if lines[end].strip() == METADATA_MARKER:
            return lines[start + 1:end], start + 2, lines[end + 1:]

    raise MalformedMetadataError("metadata block is not terminated", line=start + 1)


# ---------------------------------------------------------------------------
# Metadata Decoding
# ---------------------------------------------------------------------------
def _decode_value(key: str, raw: str, line: int) -> Any:
    """
    Decode one metadata value with YAML scalar rules.

    Quoted strings and [flow, lists] go through YAML. Plain text that YAML
    reads as a number, boolean or date keeps its original spelling.
    """
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        if raw[:1] in ("'", '"', "[", "{"):
            raise MalformedMetadataError(
                f"cannot decode value: {str(e).splitlines()[0]}", key=key, line=line
            ) from e
        # Unquoted text with a stray ': ' or similar; take it literally
        return raw

    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        items = []
        for item in value:
            if isinstance(item, (list, dict)):
                raise MalformedMetadataError("nested values are not supported", key=key, line=line)
            if item is not None:
                items.append(str(item))
        return items
    if isinstance(value, dict) and raw.startswith("{"):
        raise MalformedMetadataError("expected a string or a list", key=key, line=line)
    # Numbers, dates, booleans, and "Report: details" read as a mapping
    return raw


def _load_metadata_block(lines: list[str], first_line: int) -> Optional[dict[str, Any]]:
    """
    Load the whole metadata block as a YAML mapping.

    BaseLoader keeps every scalar as written ('2024' stays '2024'). Only
    top-level recognized keys are checked for duplicates; everything under
    other keys (block scalars, nested mappings) is left to YAML and ignored.

    Returns
    -------
    dict | None
        Top-level mapping, or None when the block is not a YAML mapping and
        the line scanner has to read it instead.
    """
    text = "\n".join(lines)
    try:
        node = yaml.compose(text, Loader=yaml.BaseLoader)
    except yaml.YAMLError:
        return None

    if node is None:
        return {}
    if not isinstance(node, yaml.MappingNode):
        return None

    seen: set[str] = set()
    for key_node, _ in node.value:
        key = key_node.value if isinstance(key_node, yaml.ScalarNode) else None
        if key not in RECOGNIZED_METADATA_KEYS:
            continue
        if key in seen:
            raise MalformedMetadataError(
                "key declared twice", key=key, line=first_line + key_node.start_mark.line
            )
        seen.add(key)

    try:
        data = yaml.load(text, Loader=yaml.BaseLoader)
    except yaml.YAMLError:
        return None
    raw: dict[str, Any] = {}
    for key, value in data.items():
        if not isinstance(key, str):
            continue
        if key not in RECOGNIZED_METADATA_KEYS:
            raw[key] = value
            continue
        if isinstance(value, dict):
            raise MalformedMetadataError("expected a string or a list", key=key)
        if isinstance(value, list):
            if any(isinstance(item, (list, dict)) for item in value):
                raise MalformedMetadataError("nested values are not supported", key=key)
            raw[key] = [item for item in value if item]
        else:
            raw[key] = value
    return raw


def _read_metadata_lines(lines: list[str], first_line: int) -> dict[str, Any]:
    """
    Turn 'key: value' lines (plus '- item' block lists) into a raw dict.

    Fallback for blocks YAML rejects, such as unquoted 'about: Report: x'.
    Indented lines continue the previous key; under an unrecognized key
    they are skipped.
    """
    raw: dict[str, Any] = {}
    key: Optional[str] = None
    list_key: Optional[str] = None

    for offset, line in enumerate(lines):
        line_no = first_line + offset
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        indented = line[:1] in (" ", "\t")
        if indented and key is not None and key not in RECOGNIZED_METADATA_KEYS:
            continue

        item_match = _LIST_ITEM.match(stripped)
        if item_match:
            if list_key is None:
                raise MalformedMetadataError("list item without a key", line=line_no)
            item = _decode_value(list_key, (item_match.group(1) or "").strip(), line_no)
            if isinstance(item, list):
                raise MalformedMetadataError("nested values are not supported", key=list_key, line=line_no)
            if item:
                raw[list_key].append(item)
            continue

        if indented and key is not None:
            # Plain multi-line scalar: fold the continuation into the value
            previous = raw[key]
            if isinstance(previous, list):
                if previous:
                    raise MalformedMetadataError("expected a list item", key=key, line=line_no)
                raw[key] = stripped
            else:
                raw[key] = f"{previous} {stripped}"
            list_key = None
            continue

        name, sep, value = stripped.partition(":")
        name = name.strip()
        if not sep or not name:
            raise MalformedMetadataError("expected a 'key: value' line", line=line_no)
        if name in raw and name in RECOGNIZED_METADATA_KEYS:
            raise MalformedMetadataError("key declared twice", key=name, line=line_no)

        key = name
        value = value.strip()
        if not value:
            # Either an empty value or the start of a block list
            raw[key] = []
            list_key = key
            continue

        list_key = None
        raw[key] = _decode_value(key, value, line_no)

    return raw


def _as_text(raw: dict[str, Any], key: str) -> str:
    value = raw.get(key, "")
    if isinstance(value, list):
        if value:
            raise MalformedMetadataError("expected a single value, got a list", key=key)
        return ""
    return value.strip()


def _as_list(raw: dict[str, Any], key: str) -> tuple[str, ...]:
    value = raw.get(key, [])
    if isinstance(value, str):
        return tuple(split_list_value(value))
    return tuple(item.strip() for item in value if item.strip())


def parse_metadata(lines: list[str], first_line: int = 1) -> TemplateMetadata:
    """
    Parse the lines between the metadata markers.

    Parameters
    ----------
    lines : list[str]
        Lines between (not including) the two marker lines.
    first_line : int
        Document line number of lines[0], used in error messages.

    Raises
    ------
    MalformedMetadataError
        If a line is not 'key: value', a value cannot be decoded, or a
        required key is missing or blank.
    """
    raw = _load_metadata_block(lines, first_line)
    if raw is None:
        raw = _read_metadata_lines(lines, first_line)

    ignored = sorted(k for k in raw if k not in RECOGNIZED_METADATA_KEYS)
    if ignored:
        logger.debug("Ignoring unrecognized metadata keys: %s", ", ".join(ignored))

    for key in REQUIRED_METADATA_KEYS:
        if key not in raw or not _as_text(raw, key):
            raise MalformedMetadataError("required key is missing or empty", key=key)

    fields: dict[str, Any] = {}
    for key in RECOGNIZED_METADATA_KEYS:
        if key in LIST_METADATA_KEYS:
            fields[key] = _as_list(raw, key)
        else:
            fields[key] = _as_text(raw, key)

    return TemplateMetadata(**fields)


# ---------------------------------------------------------------------------
# Body Scanning
# ---------------------------------------------------------------------------
def parse_sections(lines: list[str]) -> tuple[TemplateSection, ...]:
    """
    Partition body lines into sections, one per '##' heading.

    Text before the first heading is template preamble and is dropped.

    Raises
    ------
    DuplicateSectionError
        If two headings normalize to the same key.
    """
    sections: list[TemplateSection] = []
    seen: dict[str, str] = {}
    heading: Optional[str] = None
    buffer: list[str] = []
    preamble = 0
    fence: Optional[str] = None

    def flush() -> None:
        if heading is not None:
            sections.append(TemplateSection(
                heading=heading,
                prompt="\n".join(trim_blank_lines(buffer)),
                order=len(sections),
            ))

    for line in lines:
        fence_match = _FENCE.match(line)
        if fence_match:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker
            elif marker[0] == fence[0] and len(marker) >= len(fence):
                fence = None

        heading_match = _HEADING.match(line) if fence is None and not fence_match else None
        if heading_match is None:
            if heading is None:
                if line.strip():
                    preamble += 1
            else:
                buffer.append(line)
            continue

        new_heading = heading_match.group(1).strip()
        key = normalize_heading(new_heading)
        if key in seen:
            raise DuplicateSectionError(new_heading, seen[key])

        flush()
        seen[key] = new_heading
        heading = new_heading
        buffer = []

    flush()

    if preamble:
        logger.debug("Discarded %d preamble line(s) before the first section", preamble)

    return tuple(sections)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def parse_template(document_text: str, source: str = "") -> Template:
    """
    Parse a template document.

    Parameters
    ----------
    document_text : str
        Full text of the template (metadata block followed by body).
    source : str
        Where the text came from, recorded on the Template for diagnostics.

    Returns
    -------
    Template
        Immutable template; sections in document order.

    Raises
    ------
    MalformedMetadataError
        Metadata block missing, unterminated, undecodable or without 'name'.
    DuplicateSectionError
        Two body headings normalize to the same key.
    """
    meta_lines, first_line, body_lines = _split_document(document_text)
    metadata = parse_metadata(meta_lines, first_line)
    sections = parse_sections(body_lines)

    logger.debug(
        "Parsed template '%s' with %d section(s)%s",
        metadata.name,
        len(sections),
        f" from {source}" if source else "",
    )
    return Template(metadata=metadata, sections=sections, source=source)


parse = parse_template
