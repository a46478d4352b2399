"""
Construction de la session Stripe Checkout à partir des lignes normalisées.

- Résout l'origine publique des redirections (jamais une adresse d'écoute 0.0.0.0)
- Construit une ligne Stripe par OrderLineItem (montant en centimes)
- Encode le payload complet dans les métadonnées (checkout.metadata)
"""
import logging
from typing import Any, Dict, List, Mapping, Optional

from backend.config import CHECKOUT_CURRENCY

from . import metadata as checkout_metadata
from . import stripe_client
from .errors import SessionCreationError
from .normalizer import OrderLineItem, is_absolute_url

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_PRODUCT_NAME = "Flyer Design Order"
SUCCESS_PATH = "/api/checkout/success"
CART_SOURCE = "cart"

# module backend.checkout.session_builder
def _is_routable(url_or_host: Optional[str]) -> bool:
    return bool(url_or_host) and "0.0.0.0" not in url_or_host

def resolve_public_base_url(configured: Optional[str], headers: Mapping[str, str], scheme: str = "http") -> str:
    """
    Origine publique pour success_url / cancel_url.
    Priorité:
      1) URL configurée (PUBLIC_BASE_URL) si non vide et routable
      2) x-forwarded-proto (ou schéma de la requête) + en-tête host
      3) http://localhost:8000
    """
    if _is_routable(configured):
        return configured.rstrip("/")
    host = headers.get("x-forwarded-host") or headers.get("host")
    if _is_routable(host):
        proto = (headers.get("x-forwarded-proto") or scheme or "http").split(",")[0].strip()
        return f"{proto}://{host}"
    logger.warning("checkout.session_builder.resolve_public_base_url fallback to %s", DEFAULT_BASE_URL)
    return DEFAULT_BASE_URL

def to_line_item(item: OrderLineItem) -> Dict[str, Any]:
    product_data: Dict[str, Any] = {
        "name": item.event_title or DEFAULT_PRODUCT_NAME,
        "description": f"Custom flyer for {item.presenting or 'Event'}",
    }
    # Stripe n'affiche que des images absolues: un chemin relatif est omis
    if is_absolute_url(item.image_url):
        product_data["images"] = [item.image_url]
    return {
        "quantity": 1,
        "price_data": {
            "currency": CHECKOUT_CURRENCY,
            "unit_amount": int(round(item.subtotal * 100)),
            "product_data": product_data,
        },
    }

def to_line_items(items: List[OrderLineItem]) -> List[Dict[str, Any]]:
    """Une ligne Stripe par ligne de commande, dans l'ordre."""
    return [to_line_item(item) for item in items]

def build_payload(items: List[OrderLineItem], user_id: str, user_email: str) -> Dict[str, Any]:
    return {
        "userId": user_id or "",
        "userEmail": user_email or "",
        "items": [item.to_payload() for item in items],
    }

def _cancel_path(items: List[OrderLineItem], source: Optional[str]) -> str:
    if source == CART_SOURCE or len(items) > 1:
        return "/cart"
    return f"/order/{items[0].flyer_id}"

def create_checkout_session(
    items: List[OrderLineItem],
    *,
    user_id: str,
    user_email: str,
    base_url: str,
    source: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée la session Stripe pour une ou plusieurs lignes.
    - Payload complet encodé dans les métadonnées (découpé si > 500 caractères)
    - success_url porte le placeholder {CHECKOUT_SESSION_ID}
    Retour: {"id": ..., "url": ...}
    Lève SessionCreationError (aucune ligne, payload trop volumineux, refus Stripe).
    """
    if not items:
        raise SessionCreationError("Aucun article à payer")

    line_items = to_line_items(items)
    total = round(sum(item.subtotal for item in items), 2)
    payload = build_payload(items, user_id, user_email)
    try:
        metadata = checkout_metadata.encode(payload, total_price=total, source=source)
    except ValueError as e:
        raise SessionCreationError(str(e))

    base = base_url.rstrip("/")
    try:
        session = stripe_client.create_session(
            line_items=line_items,
            success_url=f"{base}{SUCCESS_PATH}?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{base}{_cancel_path(items, source)}",
            metadata=metadata,
        )
    except Exception as e:
        logger.exception("checkout.session_builder.create_checkout_session failed user_id=%s items=%s", user_id, len(items))
        raise SessionCreationError(f"Failed to create checkout session: {e}")

    if not session.get("url"):
        raise SessionCreationError("Stripe session URL not created")
    logger.info("checkout.session_builder session created id=%s items=%s total=%s", session.get("id"), len(items), total)
    return {"id": session.get("id"), "url": session.get("url")}
