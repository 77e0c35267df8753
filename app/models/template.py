"""
Template Model
==============
Pydantic models for a parsed issue template. This is the contract between
the parser and every downstream consumer (renderer, catalog, API).

All three models are frozen: a Template never changes after parse.

TemplateMetadata:
    name        — display label, non-empty
    about       — description shown in the template chooser
    title       — default issue title, may be empty
    labels      — labels applied to every issue created from the template
    assignees   — users assigned to every issue created from the template

TemplateSection:
    heading     — section name, unique within a template (normalized)
    prompt      — instructional text shown to the reporter
    order       — zero-based position within the template

Template:
    metadata    — exactly one TemplateMetadata
    sections    — sections in document order
    source      — path the template was loaded from ("" for inline documents)
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from app.utils.text import normalize_heading


class TemplateMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    about: str = ""
    title: str = ""
    labels: tuple[str, ...] = ()
    assignees: tuple[str, ...] = ()

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be empty")
        return v.strip()


class TemplateSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    heading: str
    prompt: str = ""
    order: int

    @property
    def key(self) -> str:
        return normalize_heading(self.heading)


class Template(BaseModel):
    model_config = ConfigDict(frozen=True)

    metadata: TemplateMetadata
    sections: tuple[TemplateSection, ...] = ()
    source: str = ""

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def headings(self) -> list[str]:
        return [s.heading for s in self.sections]

    def section(self, heading: str) -> Optional[TemplateSection]:
        """Look up a section by heading, ignoring case and surrounding whitespace."""
        key = normalize_heading(heading)
        for section in self.sections:
            if section.key == key:
                return section
        return None
