from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from backend.health.service import health_checkout_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return {"ok": True}

@router.get("/checkout")
def health_checkout(request: Request):
    return JSONResponse(health_checkout_info(request))
