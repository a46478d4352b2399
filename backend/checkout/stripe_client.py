"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
"""
import logging
from typing import Any, Dict, List, Optional

import stripe

from backend.config import STRIPE_MAX_NETWORK_RETRIES, STRIPE_SECRET_KEY

logger = logging.getLogger(__name__)

# Marqueur posé sur le PaymentIntent une fois les commandes créées
FULFILLED_KEY = "fulfilled_order_ids"
_MAX_METADATA_VALUE = 500

# module backend.checkout.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY si disponible.
    - Borne les tentatives réseau du SDK (STRIPE_MAX_NETWORK_RETRIES).
    - En absence de clé, les appels Stripe échoueront côté SDK (ex: No API key provided).
    """
    if STRIPE_SECRET_KEY:
        stripe.api_key = STRIPE_SECRET_KEY
    stripe.max_network_retries = STRIPE_MAX_NETWORK_RETRIES
    return stripe

def _as_dict(obj: Any) -> Dict[str, Any]:
    # StripeObject -> dict récursif
    if obj is None:
        return {}
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj)

def create_session(
    *,
    line_items: List[Dict[str, Any]],
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, str],
    mode: str = "payment",
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout.
    - line_items: lignes Stripe (price_data + quantity)
    - success_url / cancel_url: URLs de redirection ({CHECKOUT_SESSION_ID} substitué par Stripe)
    - metadata: payload encodé (voir checkout.metadata.encode)
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    session = stripe.checkout.Session.create(
        line_items=line_items,
        mode=mode,
        success_url=success_url,
        cancel_url=cancel_url,
        metadata=metadata,
        payment_method_types=["card"],
    )
    return _as_dict(session)

def get_session(session_id: str) -> Optional[Dict[str, Any]]:
    """
    Récupère une session Stripe Checkout par son identifiant (PaymentIntent déplié).
    Retour: dict session incluant "id", "payment_status", "metadata", "payment_intent".
    """
    require_stripe()
    session = stripe.checkout.Session.retrieve(session_id, expand=["payment_intent"])
    return _as_dict(session) if session else None

def fulfilled_order_ids(session: Dict[str, Any]) -> List[str]:
    """IDs de commandes déjà créées pour cette session (marqueur du PaymentIntent), sinon []."""
    intent = (session or {}).get("payment_intent")
    if not isinstance(intent, dict):
        return []
    raw = (intent.get("metadata") or {}).get(FULFILLED_KEY) or ""
    return [oid for oid in raw.split(",") if oid]

def mark_session_fulfilled(session: Dict[str, Any], order_ids: List[str]) -> bool:
    """
    Pose le marqueur 'fulfilled_order_ids' sur le PaymentIntent de la session.
    - Les IDs sont limités à 500 caractères (IDs en queue abandonnés).
    - Best-effort: retourne False si aucun PaymentIntent ou en cas d'erreur Stripe.
    """
    intent = (session or {}).get("payment_intent")
    intent_id = intent.get("id") if isinstance(intent, dict) else intent
    if not intent_id:
        return False
    value = ""
    for oid in order_ids:
        candidate = f"{value},{oid}" if value else oid
        if len(candidate) > _MAX_METADATA_VALUE:
            break
        value = candidate
    try:
        require_stripe()
        stripe.PaymentIntent.modify(intent_id, metadata={FULFILLED_KEY: value})
        return True
    except Exception:
        logger.exception("checkout.stripe_client.mark_session_fulfilled failed intent=%s", intent_id)
        return False
