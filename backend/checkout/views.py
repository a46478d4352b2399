import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, ConfigDict
from starlette.status import HTTP_303_SEE_OTHER

from backend.config import PUBLIC_BASE_URL, TEMP_UPLOAD_MAX_BYTES
from backend.utils.rate_limit import optional_rate_limit

from . import metadata as checkout_metadata
from . import service as checkout_service
from . import session_builder, temp_assets
from .errors import SessionCreationError
from .normalizer import normalize_item

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Checkout API"])


class CreateSessionRequest(BaseModel):
    """
    Corps de POST /api/checkout/create-session.
    Une des trois formes: items (panier), orderData (payload complet), item (ligne seule).
    """

    model_config = ConfigDict(extra="allow")

    userId: Optional[Any] = None
    userEmail: Optional[str] = None
    items: Optional[List[Dict[str, Any]]] = None
    orderData: Optional[Dict[str, Any]] = None
    item: Optional[Any] = None
    source: Optional[str] = None


class LegacySessionRequest(BaseModel):
    item: Any = None


def _base_url(request: Request) -> str:
    return session_builder.resolve_public_base_url(PUBLIC_BASE_URL, request.headers, request.url.scheme)

def _raw_items(body: CreateSessionRequest) -> List[Any]:
    if body.items:
        return list(body.items)
    if body.orderData:
        return checkout_metadata.extract_items(body.orderData)
    if body.item is None:
        return []
    return body.item if isinstance(body.item, list) else [body.item]

# module backend.checkout.views
@router.post("/checkout/create-session", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_session(request: Request, body: CreateSessionRequest):
    """
    Crée une session Stripe Checkout pour une ou plusieurs lignes de commande.
    - Entrée JSON: {userId, userEmail, items | orderData | item, source}
    - Normalise chaque ligne (normalize_item) puis délègue à session_builder
    - Réponse: {"sessionId": "...", "url": "..."}
    - Erreurs: 400 si aucune ligne, payload trop volumineux ou refus Stripe
    """
    order_data = body.orderData or {}
    user_id = str(body.userId or order_data.get("userId") or "")
    user_email = body.userEmail or order_data.get("userEmail") or ""
    defaults = {"user_id": user_id, "email": user_email}
    items = [normalize_item(raw, defaults) for raw in _raw_items(body)]
    try:
        session = session_builder.create_checkout_session(
            items,
            user_id=user_id,
            user_email=user_email,
            base_url=_base_url(request),
            source=body.source,
        )
    except SessionCreationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    return JSONResponse({"sessionId": session["id"], "url": session["url"]})

@router.post("/checkout/session", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_legacy_session(request: Request, body: LegacySessionRequest):
    """
    Variante historique: {"item": {...}} ou {"item": [...]} -> {"url": "..."}.
    """
    raw_items = body.item if isinstance(body.item, list) else [body.item] if body.item else []
    items = [normalize_item(raw) for raw in raw_items]
    first = items[0] if items else None
    try:
        session = session_builder.create_checkout_session(
            items,
            user_id=first.user_id if first else "",
            user_email=first.email if first else "",
            base_url=_base_url(request),
        )
    except SessionCreationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    return JSONResponse({"url": session["url"]})

@router.get("/checkout/success", include_in_schema=False)
def checkout_success(request: Request, session_id: Optional[str] = None):
    """
    Retour Stripe après paiement: crée les commandes puis redirige (303).
    Handler synchrone: exécuté dans le threadpool, le fan-out est terminé avant la réponse.
    """
    url = checkout_service.fulfill_session(session_id, _base_url(request))
    return RedirectResponse(url=url, status_code=HTTP_303_SEE_OTHER)

@router.post("/tmp-upload")
async def tmp_upload(
    file: UploadFile = File(...),
    field: str = Form("file"),
    uploadId: Optional[str] = Form(None),
):
    """
    Stocke un fichier du formulaire en attente du paiement.
    - Réponse: {"success": true, "filepath": "...", "filename": "..."}
    - Erreurs: 413 au-delà de TEMP_UPLOAD_MAX_BYTES
    """
    content = await file.read(TEMP_UPLOAD_MAX_BYTES + 1)
    if len(content) > TEMP_UPLOAD_MAX_BYTES:
        logger.warning("checkout.views.tmp_upload rejected field=%s filename=%s", field, file.filename)
        raise HTTPException(status_code=413, detail="Fichier trop volumineux")
    # écriture disque bloquante: hors de la boucle d'événements
    asset = await run_in_threadpool(temp_assets.stage, content, field, filename=file.filename, upload_id=uploadId)
    return {"success": True, "filepath": asset.file_path, "filename": file.filename}
