"""
Template Catalog
================
Discovers and parses every issue template in a directory (the layout of
a repository's .github/ISSUE_TEMPLATE/ folder).

Strategy:
    - Only *.md files are templates; config.yml and friends are ignored.
    - A broken template does not hide the others: per-file parse errors
      are collected in TemplateCatalog.failures and logged.
    - Two files declaring the same template name is a catalog defect and
      raises DuplicateTemplateError.

Deterministic:
    Same directory contents → same catalog, always (files sorted by name).
"""
import os
import logging
from dataclasses import dataclass, field
from typing import Optional

from app.core.constants import TEMPLATE_EXTENSIONS
from app.core.errors import DuplicateTemplateError, TemplateError
from app.models.template import Template
from app.parser.template_parser import parse_template
from app.utils.text import normalize_heading

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------
@dataclass
class TemplateCatalog:
    """
    Parsed templates from one directory.

    Attributes
    ----------
    directory : str
        Directory the catalog was loaded from.
    templates : dict[str, Template]
        Normalized template name → Template, in file order.
    failures : dict[str, dict]
        File path → error details for files that failed to parse.
    """
    directory: str
    templates: dict[str, Template] = field(default_factory=dict)
    failures: dict[str, dict] = field(default_factory=dict)

    def names(self) -> list[str]:
        return [t.metadata.name for t in self.templates.values()]

    def get(self, name: str) -> Optional[Template]:
        """Look up by template name (case-insensitive) or by file stem."""
        key = normalize_heading(name)
        if key in self.templates:
            return self.templates[key]
        for template in self.templates.values():
            stem = os.path.splitext(os.path.basename(template.source))[0]
            if template.source and normalize_heading(stem) == key:
                return template
        return None


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------
def discover_templates(directory: str) -> list[str]:
    """
    List template files in a directory (non-recursive, sorted).

    Returns
    -------
    list[str]
        Full paths. Empty if the directory does not exist.
    """
    if not os.path.isdir(directory):
        logger.warning("Template directory not found: %s", directory)
        return []

    found: list[str] = []
    for fname in sorted(os.listdir(directory)):
        full_path = os.path.join(directory, fname)
        if os.path.isfile(full_path) and fname.lower().endswith(TEMPLATE_EXTENSIONS):
            found.append(full_path)
    return found


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------
def load_template(path: str) -> Template:
    """Read and parse one template file. Parse errors propagate."""
    with open(path, "r", encoding="utf-8") as f:
        content = f.read()
    return parse_template(content, source=path)


def load_catalog(directory: str) -> TemplateCatalog:
    """
    Discover and parse all templates in a directory.

    Raises
    ------
    DuplicateTemplateError
        If two files declare the same template name.
    """
    catalog = TemplateCatalog(directory=directory)

    for path in discover_templates(directory):
        try:
            template = load_template(path)
        except TemplateError as e:
            logger.warning("Skipping template %s: %s", path, e)
            catalog.failures[path] = e.to_dict()
            continue
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s: %s", path, e)
            catalog.failures[path] = {"error": "unreadable", "message": str(e)}
            continue

        key = normalize_heading(template.metadata.name)
        existing = catalog.templates.get(key)
        if existing is not None:
            raise DuplicateTemplateError(template.metadata.name, [existing.source, path])
        catalog.templates[key] = template

    logger.info(
        "Loaded %d template(s) from %s (%d failed)",
        len(catalog.templates),
        directory,
        len(catalog.failures),
    )
    return catalog
