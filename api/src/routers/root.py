"""
Top-level routes that are not part of a mounted sub-router.

Exposes:
- <flashcard prefix> (no trailing slash): redirect into the mount
- anything unmatched, with any method: home
"""

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import RedirectResponse

from api.src.responses import text_response
from api.src.routers.routing import ALL_METHODS, AnyMethodRoute

router = APIRouter(route_class=AnyMethodRoute)


async def redirect_to_flashcard_root(request: Request) -> Response:
    """Send the bare prefix to its trailing-slash form."""
    prefix = request.app.state.settings.flashcard_prefix
    target = f"{prefix}/"
    if request.url.query:
        target = f"{target}?{request.url.query}"
    return RedirectResponse(url=target, status_code=status.HTTP_301_MOVED_PERMANENTLY)


def create_redirect_router(prefix: str) -> APIRouter:
    """Router holding the bare-prefix redirect for every method."""
    redirect = APIRouter(route_class=AnyMethodRoute)
    redirect.add_api_route(
        prefix,
        redirect_to_flashcard_root,
        methods=ALL_METHODS,
        include_in_schema=False,
    )
    return redirect


@router.api_route("/{path:path}", methods=ALL_METHODS, include_in_schema=False)
async def home(path: str) -> Response:
    """Catch-all root handler."""
    return text_response("Home")
