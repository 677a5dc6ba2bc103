"""HTTP mapping for the errors Protean's FastAPI integration does not cover."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError
from protean.integrations.fastapi import register_exception_handlers

from ordering.errors import ForbiddenError
from payments.gateway.port import GatewayError


def register_error_handlers(app: FastAPI) -> None:
    """Protean's standard mappings plus 403, stale-write 409 and gateway 502."""
    register_exception_handlers(app)

    @app.exception_handler(ForbiddenError)
    async def forbidden_handler(request: Request, exc: ForbiddenError):
        return JSONResponse(status_code=403, content={"error": "Not authorized"})

    @app.exception_handler(ExpectedVersionError)
    async def version_conflict_handler(request: Request, exc: ExpectedVersionError):
        return JSONResponse(
            status_code=409,
            content={"error": "The resource was changed by another request. Reload and retry"},
        )

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        return JSONResponse(
            status_code=502,
            content={"error": {"kind": exc.kind, "message": str(exc)}},
        )
