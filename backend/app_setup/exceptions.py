"""
Gestionnaires d’exceptions utilisés par la factory.
- HTTPException: réponse JSON FastAPI standard {"detail": ...}.
- CheckoutError non interceptée par une vue: 400 avec le message métier.
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from backend.checkout.errors import CheckoutError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    """
    Enregistre les handlers HTTPException et CheckoutError.
    - API: JSON immuable pour clients programmatiques.
    """
    @app.exception_handler(HTTPException)
    async def json_http_exception(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)

    @app.exception_handler(CheckoutError)
    async def json_checkout_error(request: Request, exc: CheckoutError):
        logger.warning("app_setup.exceptions checkout error path=%s: %s", request.url.path, exc.message)
        return JSONResponse(status_code=400, content={"detail": exc.message or exc.__class__.__name__})
