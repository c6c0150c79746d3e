"""Map provider and domain errors onto HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from flint.engine.retry import MfaRequiredError, PermanentError, ProviderError
from flint.schemas.payments import MfaChallenge

logger = logging.getLogger("flint.api")


async def _mfa_required(request: Request, exc: MfaRequiredError) -> JSONResponse:
    body = MfaChallenge(connect_token=exc.connect_token)
    return JSONResponse(status_code=409, content=body.model_dump(by_alias=True))


async def _permanent(request: Request, exc: PermanentError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc)})


async def _provider(request: Request, exc: ProviderError) -> JSONResponse:
    logger.error("Provider failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=502,
        content={"message": "The provider is temporarily unavailable. Please try again."},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MfaRequiredError, _mfa_required)
    app.add_exception_handler(PermanentError, _permanent)
    app.add_exception_handler(ProviderError, _provider)
