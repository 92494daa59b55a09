"""
Wellspring Backend - Content Route Handlers
============================================

What:  POST /api/convert (free text → session document) and
       POST /api/content/fetch (load a session document from its json_url).
Who:   Called by the session editor ("Convert to JSON" and "Load JSON").

Request Flow (convert):
    1. FastAPI validates {text, title?}
    2. The converter builds the document and collects warnings
    3. Return {content, warnings}; nothing is persisted here, the editor
       saves the document through PUT /api/sessions/{id}

Error responses (handled by global exception handlers):
    HTTP 400: Empty text (EmptyInputError) or non-http(s) URL
    HTTP 401: Missing caller identity (fetch only)
    HTTP 413: Text above the configured line/character limits
    HTTP 502: Remote JSON could not be loaded
    HTTP 503: Remote loading disabled by the circuit breaker
"""

import logging

from fastapi import APIRouter, Depends

from app.auth import get_current_user
from app.schemas.document import ConvertRequest, ConvertResponse
from app.schemas.session import ErrorResponse, FetchContentRequest, FetchContentResponse
from app.services.content_fetch_service import content_fetch_service
from app.services.converter import session_text_converter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Content"])


@router.post(
    "/convert",
    response_model=ConvertResponse,
    responses={
        400: {"description": "Nothing to convert", "model": ErrorResponse},
        413: {"description": "Text too large", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
    },
    summary="Convert a free-text session description to a session document",
    description=(
        "Turns a plain-text description (one item per line; exercises as '1. Name - 2 min', "
        "'- Name - 10 reps' or '* Name') into the structured session document. "
        "Values that were ignored or overridden are reported as warnings."
    ),
)
async def convert_text(body: ConvertRequest) -> ConvertResponse:
    document, warnings = session_text_converter.convert(body.text, body.title)

    if warnings:
        logger.info(
            "Conversion produced %d warning(s): %s",
            len(warnings),
            ", ".join(sorted({w.code for w in warnings})),
        )

    return ConvertResponse(content=document.to_content(), warnings=warnings)


@router.post(
    "/content/fetch",
    response_model=FetchContentResponse,
    responses={
        400: {"description": "Unsupported URL", "model": ErrorResponse},
        401: {"description": "Missing caller identity", "model": ErrorResponse},
        502: {"description": "Remote JSON unusable", "model": ErrorResponse},
        503: {"description": "Remote loading temporarily disabled", "model": ErrorResponse},
    },
    summary="Load session JSON from an http(s) URL",
)
async def fetch_content(
    body: FetchContentRequest,
    owner_id: str = Depends(get_current_user),
) -> FetchContentResponse:
    logger.debug("Content fetch requested by %s", owner_id)
    content = await content_fetch_service.fetch_json(body.url)
    return FetchContentResponse(content=content)
