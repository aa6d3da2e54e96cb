"""
Route class for handlers that accept every HTTP method.

FastAPI routes are bound to a method list and answer anything else with
Starlette's own 405. The catch-alls and the create endpoint instead take
every method, including ones outside ALL_METHODS such as TRACE or PROPFIND,
and decide for themselves.
"""

from fastapi.routing import APIRoute
from starlette.routing import Match
from starlette.types import Receive, Scope, Send

# Methods advertised in the OpenAPI schema; matching is not limited to them.
ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class AnyMethodRoute(APIRoute):
    """APIRoute that matches on path alone."""

    def matches(self, scope: Scope):
        match, child_scope = super().matches(scope)
        # PARTIAL only means the path matched and the method did not.
        if match == Match.PARTIAL:
            match = Match.FULL
        return match, child_scope

    async def handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.app(scope, receive, send)
