"""
Text Utils
==========
Heading and list-value normalisation shared by the parser, renderer and catalog.
"""


def normalize_heading(heading: str) -> str:
    """Case-insensitive, whitespace-trimmed key used to compare headings."""
    return " ".join(heading.split()).casefold()


def trim_blank_lines(lines: list[str]) -> list[str]:
    """Drop leading and trailing lines that contain only whitespace."""
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


def split_list_value(value: str) -> list[str]:
    """Split a comma-separated metadata value ("bug, triage") into items."""
    return [item.strip() for item in value.split(",") if item.strip()]
