"""
Template Errors
===============
Every structural defect in a template document or a submission is raised
as a TemplateError subclass. None of them are transient: the caller shows
the message to the template author or reporter, who edits and retries.

Hierarchy:
    TemplateError
    ├── MalformedMetadataError   — metadata block missing, unterminated, undecodable, or no name
    ├── DuplicateSectionError    — two headings normalize to the same key
    ├── DuplicateTemplateError   — two catalog files declare the same template name
    └── FormValidationError      — aggregate of every missing / unknown / duplicated section in a submission
        ├── MissingSectionError  — at least one declared section left blank
        ├── UnknownSectionError  — nothing missing, but undeclared headings submitted
        └── DuplicateAnswerError — only problem is two submitted headings naming one section
"""
from typing import Iterable, Optional


def _as_list(headings: Iterable[str]) -> list[str]:
    if isinstance(headings, str):
        return [headings]
    return list(headings)


class TemplateError(Exception):
    """Base class for template parsing and rendering failures."""

    kind = "template_error"

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": str(self)}


class MalformedMetadataError(TemplateError):
    kind = "malformed_metadata"

    def __init__(self, reason: str, key: Optional[str] = None, line: Optional[int] = None):
        self.reason = reason
        self.key = key
        self.line = line
        location = ""
        if key is not None:
            location += f" (key '{key}')"
        if line is not None:
            location += f" at line {line}"
        super().__init__(f"Malformed metadata: {reason}{location}")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({"reason": self.reason, "key": self.key, "line": self.line})
        return data


class DuplicateSectionError(TemplateError):
    kind = "duplicate_section"

    def __init__(self, heading: str, first_heading: Optional[str] = None):
        self.heading = heading
        self.first_heading = first_heading if first_heading is not None else heading
        super().__init__(
            f"Duplicate section '{heading}' (already declared as '{self.first_heading}')"
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({"heading": self.heading, "first_heading": self.first_heading})
        return data


class DuplicateTemplateError(TemplateError):
    kind = "duplicate_template"

    def __init__(self, name: str, paths: Iterable[str]):
        self.name = name
        self.paths = list(paths)
        super().__init__(f"Template name '{name}' declared by {', '.join(self.paths)}")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({"name": self.name, "paths": self.paths})
        return data


class FormValidationError(TemplateError):
    """
    All problems found in one submission.

    A reporter sees every missing, unknown and duplicated heading at once,
    so the renderer never raises on the first problem it finds.
    """

    kind = "form_validation"

    def __init__(
        self,
        missing: Iterable[str] = (),
        unknown: Iterable[str] = (),
        duplicate: Iterable[str] = (),
    ):
        self.missing = _as_list(missing)
        self.unknown = _as_list(unknown)
        self.duplicate = _as_list(duplicate)
        super().__init__(self._describe())

    @property
    def heading(self) -> Optional[str]:
        """First offending heading: missing, then unknown, then duplicated."""
        problems = self.missing + self.unknown + self.duplicate
        return problems[0] if problems else None

    def _describe(self) -> str:
        parts = []
        if self.missing:
            parts.append("missing section(s): " + ", ".join(f"'{h}'" for h in self.missing))
        if self.unknown:
            parts.append("unknown section(s): " + ", ".join(f"'{h}'" for h in self.unknown))
        if self.duplicate:
            parts.append("section(s) answered twice: " + ", ".join(f"'{h}'" for h in self.duplicate))
        return "; ".join(parts) or "invalid submission"

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({"missing": self.missing, "unknown": self.unknown, "duplicate": self.duplicate})
        return data


class MissingSectionError(FormValidationError):
    kind = "missing_section"


class UnknownSectionError(FormValidationError):
    kind = "unknown_section"

    def __init__(
        self,
        unknown: Iterable[str] = (),
        missing: Iterable[str] = (),
        duplicate: Iterable[str] = (),
    ):
        super().__init__(missing=missing, unknown=unknown, duplicate=duplicate)


class DuplicateAnswerError(FormValidationError):
    kind = "duplicate_answer"

    def __init__(
        self,
        duplicate: Iterable[str] = (),
        missing: Iterable[str] = (),
        unknown: Iterable[str] = (),
    ):
        super().__init__(missing=missing, unknown=unknown, duplicate=duplicate)
