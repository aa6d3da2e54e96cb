"""
Flashcard router.

Mounted under the flashcard prefix; the mount strips the prefix, so routes
here are relative to it:
- /create : generate a flashcard for one word (POST only)
- anything else : flashcard root
"""

import structlog
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from starlette.requests import ClientDisconnect

from api.src.config import Settings
from api.src.dependencies import get_inference_client, get_settings_dependency
from api.src.errors import ClientInputError, RequestBodyError
from api.src.models.flashcard import CreateRequest
from api.src.responses import register_exception_handlers, text_response
from api.src.routers.routing import ALL_METHODS, AnyMethodRoute
from api.src.services.inference_client import (
    InferenceClient,
    build_inference_call,
    parse_inference_response,
)
from api.src.services.prompt_builder import build_prompt

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Flashcards"], route_class=AnyMethodRoute)


@router.api_route(
    "/create",
    methods=ALL_METHODS,
    response_class=PlainTextResponse,
    summary="Create Flashcard",
    description="""
    Generate a flashcard for a single Japanese word.

    **Request Body:**
    - word: the word to build a card for

    **Success Response (200):**
    The model's flashcard text, exactly as the inference backend returned it.

    **Error Responses:**
    - 400: Body is not a valid JSON object with a string `word`
    - 405: Method other than POST
    - 500: Backend reply could not be decoded
    - 502: Inference backend unreachable or timed out
    """,
)
async def create_flash_card(
    request: Request,
    settings: Settings = Depends(get_settings_dependency),
    inference_client: InferenceClient = Depends(get_inference_client),
) -> Response:
    """
    Generate a flashcard.

    Each failure ends the request; nothing after a failed step runs.
    """
    if request.method != "POST":
        raise HTTPException(
            status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
            detail="Method not accepted",
            headers={"Allow": "POST"}
        )

    try:
        body = await request.body()
    except ClientDisconnect as e:
        raise RequestBodyError("client disconnected while sending body") from e

    try:
        create_request = CreateRequest.model_validate_json(body)
    except ValidationError as e:
        raise ClientInputError(str(e)) from e

    logger.info("flashcard_requested", word=create_request.word)

    prompt = build_prompt(create_request.word)
    call = build_inference_call(prompt, settings)
    raw = await inference_client.execute(call)
    inference = parse_inference_response(raw)

    logger.info(
        "flashcard_generated",
        word=create_request.word,
        response_chars=len(inference.response)
    )

    return PlainTextResponse(inference.response)


@router.api_route("/{path:path}", methods=ALL_METHODS, include_in_schema=False)
async def flashcard_root(path: str) -> Response:
    """Catch-all for the flashcard mount."""
    return text_response("Flashcard root")


def create_flashcard_app(settings: Settings, inference_client: InferenceClient) -> FastAPI:
    """
    Build the flashcard sub-application.

    Args:
        settings: Settings shared with the parent dispatcher
        inference_client: Executor for outbound inference calls

    Returns:
        Application to mount at ``settings.flashcard_prefix``
    """
    app = FastAPI(
        title=f"{settings.app_name} - Flashcards",
        version=settings.app_version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.inference_client = inference_client

    register_exception_handlers(app)
    app.include_router(router)

    return app
