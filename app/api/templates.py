"""
/api/templates
==============
HTTP surface over the parser and renderer for an issue host's form UI.

Routes:
    GET  /api/templates                 — catalog summary (+ files that failed to parse)
    GET  /api/templates/{name}          — parsed template
    GET  /api/templates/{name}/form     — fillable form description
    POST /api/templates/{name}/render   — filled form → issue payload
    POST /api/templates/parse           — inline document → parsed template
    POST /api/render                    — inline document + filled form → issue payload

Rendered template names are left on request.state.template for the access log.

Errors:
    TemplateError subclasses → 422 with the error's to_dict() as detail
    Unknown template name    → 404
    Oversized document       → 413
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from app.core.config import MAX_DOCUMENT_BYTES, TEMPLATE_DIR
from app.core.errors import DuplicateTemplateError, TemplateError
from app.models.form_spec import FormSpec
from app.models.issue_payload import IssuePayload
from app.models.template import Template
from app.parser.template_parser import parse_template
from app.renderer.form_renderer import build_form, render
from app.services.template_catalog import TemplateCatalog, load_catalog

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Templates"])

_catalog: Optional[TemplateCatalog] = None


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------
class ParseRequest(BaseModel):
    document: str


class SubmissionRequest(BaseModel):
    title: Optional[str] = None
    sections: dict[str, str] = Field(default_factory=dict)


class InlineRenderRequest(SubmissionRequest):
    document: str


class TemplateSummary(BaseModel):
    name: str
    about: str
    source: str
    sections: List[str]


class CatalogResponse(BaseModel):
    directory: str
    templates: List[TemplateSummary]
    failures: dict[str, dict]


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
def get_catalog() -> TemplateCatalog:
    """Load the catalog from TEMPLATE_DIR once per process."""
    global _catalog
    if _catalog is None:
        try:
            _catalog = load_catalog(TEMPLATE_DIR)
        except DuplicateTemplateError as e:
            logger.error("Template catalog is invalid: %s", e)
            raise HTTPException(status_code=500, detail=e.to_dict())
    return _catalog


def reset_catalog() -> None:
    """Drop the cached catalog so the next request reloads TEMPLATE_DIR."""
    global _catalog
    _catalog = None


def _lookup(catalog: TemplateCatalog, name: str) -> Template:
    template = catalog.get(name)
    if template is None:
        raise HTTPException(status_code=404, detail=f"Unknown template '{name}'")
    return template


def _check_size(document: str) -> None:
    size = len(document.encode("utf-8"))
    if size > MAX_DOCUMENT_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"Document is {size} bytes; limit is {MAX_DOCUMENT_BYTES}",
        )


def _unprocessable(e: TemplateError) -> HTTPException:
    logger.info("Rejected: %s", e)
    return HTTPException(status_code=422, detail=e.to_dict())


# ---------------------------------------------------------------------------
# Catalog routes
# ---------------------------------------------------------------------------
@router.get("/templates", response_model=CatalogResponse)
async def list_templates(catalog: TemplateCatalog = Depends(get_catalog)):
    return CatalogResponse(
        directory=catalog.directory,
        templates=[
            TemplateSummary(
                name=t.metadata.name,
                about=t.metadata.about,
                source=t.source,
                sections=t.headings,
            )
            for t in catalog.templates.values()
        ],
        failures=catalog.failures,
    )


@router.post("/templates/parse", response_model=Template)
async def parse_document(request: ParseRequest):
    _check_size(request.document)
    try:
        return parse_template(request.document)
    except TemplateError as e:
        raise _unprocessable(e)


@router.get("/templates/{name}", response_model=Template)
async def get_template(name: str, catalog: TemplateCatalog = Depends(get_catalog)):
    return _lookup(catalog, name)


@router.get("/templates/{name}/form", response_model=FormSpec)
async def get_form(name: str, catalog: TemplateCatalog = Depends(get_catalog)):
    return build_form(_lookup(catalog, name))


@router.post("/templates/{name}/render", response_model=IssuePayload)
async def render_submission(
    name: str,
    submission: SubmissionRequest,
    request: Request,
    catalog: TemplateCatalog = Depends(get_catalog),
):
    template = _lookup(catalog, name)
    request.state.template = template.metadata.name
    try:
        return render(template, submission.sections, title=submission.title)
    except TemplateError as e:
        raise _unprocessable(e)


# ---------------------------------------------------------------------------
# Inline route
# ---------------------------------------------------------------------------
@router.post("/render", response_model=IssuePayload)
async def render_inline(submission: InlineRenderRequest, request: Request):
    _check_size(submission.document)
    try:
        template = parse_template(submission.document)
        request.state.template = template.metadata.name
        return render(template, submission.sections, title=submission.title)
    except TemplateError as e:
        raise _unprocessable(e)
