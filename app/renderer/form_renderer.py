"""
Form Renderer
=============
Turns a parsed Template into the form a reporter fills in, and a filled
form into the IssuePayload handed to the issue host.

Render pipeline:
    1. Match submitted headings to declared sections (normalized keys)
    2. Collect every missing, unknown and duplicated heading
    3. Raise one aggregate error if anything is wrong
    4. Emit '## heading' + reporter text per section, in template order
    5. Take title from the submission, else the template default;
       labels and assignees always come from the template

Contract:
    - PURE: nothing is cached or retained between calls.
    - Every declared section is mandatory (at least one non-whitespace character).
"""
import logging
from typing import Mapping, Optional, Union

from app.core.constants import HEADING_MARKER, SECTION_SEPARATOR
from app.core.errors import DuplicateAnswerError, MissingSectionError, UnknownSectionError
from app.models.filled_form import FilledForm
from app.models.form_spec import FormField, FormSpec
from app.models.issue_payload import IssuePayload
from app.models.template import Template
from app.utils.text import normalize_heading

logger = logging.getLogger(__name__)

Submission = Union[FilledForm, Mapping[str, str]]


# ---------------------------------------------------------------------------
# Form Description
# ---------------------------------------------------------------------------
def build_form(template: Template) -> FormSpec:
    """Describe the fillable form for a template: one required field per section."""
    meta = template.metadata
    return FormSpec(
        template=meta.name,
        about=meta.about,
        default_title=meta.title,
        labels=list(meta.labels),
        assignees=list(meta.assignees),
        fields=[
            FormField(heading=s.heading, prompt=s.prompt, order=s.order)
            for s in template.sections
        ],
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
def _as_form(filled: Submission) -> FilledForm:
    if isinstance(filled, FilledForm):
        return filled
    return FilledForm(sections=dict(filled))


def match_sections(template: Template, filled: Submission) -> dict[str, str]:
    """
    Map each declared heading to the reporter's text.

    Raises
    ------
    MissingSectionError
        At least one declared section has no non-blank text. The error
        also lists any unknown and duplicated headings.
    UnknownSectionError
        Nothing is missing but undeclared headings were submitted.
    DuplicateAnswerError
        The only problem is two submitted headings naming one section.
    """
    form = _as_form(filled)
    declared = {s.key: s.heading for s in template.sections}

    answers: dict[str, str] = {}
    submitted: set[str] = set()
    unknown: list[str] = []
    duplicate: list[str] = []

    for heading, text in form.sections.items():
        key = normalize_heading(heading)
        if key not in declared:
            unknown.append(heading)
            continue
        if key in submitted:
            duplicate.append(heading)
            continue
        submitted.add(key)
        answers[declared[key]] = text

    missing = [
        s.heading for s in template.sections
        if not (answers.get(s.heading) or "").strip()
    ]

    if missing:
        raise MissingSectionError(missing=missing, unknown=unknown, duplicate=duplicate)
    if unknown:
        raise UnknownSectionError(unknown=unknown, duplicate=duplicate)
    if duplicate:
        raise DuplicateAnswerError(duplicate=duplicate)

    return answers


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------
def render_body(template: Template, answers: Mapping[str, str]) -> str:
    """Concatenate '## heading' and answer for each section in template order."""
    blocks = [
        f"{HEADING_MARKER} {s.heading}{SECTION_SEPARATOR}{answers[s.heading].strip()}"
        for s in template.sections
    ]
    return SECTION_SEPARATOR.join(blocks)


def render(template: Template, filled: Submission, title: Optional[str] = None) -> IssuePayload:
    """
    Render a filled form into an issue payload.

    Parameters
    ----------
    template : Template
        Parsed template the form was generated from.
    filled : FilledForm | Mapping[str, str]
        Reporter text keyed by section heading. A FilledForm may also
        carry a title.
    title : str, optional
        Title override; takes precedence over FilledForm.title.

    Returns
    -------
    IssuePayload
        title, body, labels and assignees for the issue host.
    """
    form = _as_form(filled)
    answers = match_sections(template, form)

    chosen = title if title is not None else form.title
    if chosen is None or not chosen.strip():
        chosen = template.metadata.title

    payload = IssuePayload(
        title=chosen.strip(),
        body=render_body(template, answers),
        labels=list(template.metadata.labels),
        assignees=list(template.metadata.assignees),
    )
    logger.debug(
        "Rendered '%s' issue with %d section(s)", template.metadata.name, len(template.sections)
    )
    return payload
