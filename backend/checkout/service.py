"""
Cas d'usage 'checkout': fulfillment d'une session Stripe payée.

fulfill_session() enchaîne, pour une redirection de succès Stripe:
  1) vérification de la session (présente, trouvée, payée)
  2) court-circuit si la session est déjà honorée (marqueur sur le PaymentIntent)
  3) décodage des métadonnées -> lignes de commande
  4) fan-out séquentiel: une commande par ligne (échec d'une ligne = ligne ignorée)
  5) agrégation: nettoyage des fichiers temporaires, vidage du panier, marqueur, remerciement
Toutes les sorties sont des URLs de redirection construites par redirects.build_redirect.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from backend.config import CHECKOUT_RESULT_PATH, CHECKOUT_THANK_YOU_PATH

from . import metadata as checkout_metadata
from . import orders_client, stripe_client, temp_assets
from .errors import (
    DecodeError,
    FulfillmentError,
    ItemSubmissionError,
    PaymentError,
    TotalFailureError,
    ValidationError,
)
from .normalizer import normalize_item
from .redirects import build_redirect
from .session_builder import CART_SOURCE
from .side_effects import SideEffectDispatcher

logger = logging.getLogger(__name__)

PROCESSING_ERROR = "Processing error"
UNKNOWN_FAILURE = "No orders were created"


@dataclass
class FulfillmentResult:
    session_id: str
    order_ids: List[str] = field(default_factory=list)
    last_error: Optional[str] = None
    attempted: int = 0
    succeeded: int = 0
    cleanup_paths: List[str] = field(default_factory=list)


# module backend.checkout.service
def verify_session(session_id: Optional[str]) -> Dict[str, Any]:
    """Récupère la session et vérifie qu'elle est payée. Lève ValidationError / PaymentError."""
    if not session_id:
        raise ValidationError("Missing session_id")
    try:
        session = stripe_client.get_session(session_id)
    except Exception as e:
        logger.exception("checkout.service.verify_session failed session_id=%s", session_id)
        raise PaymentError(f"Stripe error: {e}", session_id=session_id)
    if not session:
        raise PaymentError("Session not found", session_id=session_id, error_code="session_not_found")
    payment_status = session.get("payment_status") or ""
    if payment_status != "paid":
        logger.warning("checkout.service.verify_session unpaid session_id=%s status=%s", session_id, payment_status)
        raise PaymentError(
            f"Payment not completed (payment_status={payment_status})",
            session_id=session_id,
            error_code="payment_failed",
        )
    return session

def decode_items(session: Dict[str, Any], session_id: str) -> List[Any]:
    try:
        payload = checkout_metadata.decode(session.get("metadata") or {})
    except DecodeError as e:
        e.session_id = session_id
        raise
    return checkout_metadata.extract_items(payload)

def fan_out(
    raw_items: List[Any],
    payload_defaults: Dict[str, Any],
    session_id: str,
    dispatcher: SideEffectDispatcher,
) -> FulfillmentResult:
    """
    Crée une commande par ligne, séquentiellement et dans l'ordre.
    Une ligne en échec est journalisée puis ignorée; les fichiers d'une ligne
    ne sont collectés pour nettoyage qu'après création de sa commande.
    """
    result = FulfillmentResult(session_id=session_id)
    for index, raw in enumerate(raw_items):
        result.attempted += 1
        try:
            item = normalize_item(raw, payload_defaults)
            submission = orders_client.build_submission(item)
            order_id = orders_client.submit_order(submission, idempotency_key=f"{session_id}:{index}")
        except ItemSubmissionError as e:
            logger.warning("checkout.service.fan_out item failed session_id=%s index=%s: %s", session_id, index, e.message)
            result.last_error = e.message
            continue
        except Exception as e:
            logger.exception("checkout.service.fan_out unexpected failure session_id=%s index=%s", session_id, index)
            result.last_error = str(e) or PROCESSING_ERROR
            continue

        result.order_ids.append(order_id)
        result.succeeded += 1
        result.cleanup_paths.extend(submission.staged_paths)
        logger.info("checkout.service.fan_out order created session_id=%s index=%s order_id=%s", session_id, index, order_id)
        dispatcher.send_confirmation(order_id, item.email, item)
    return result

def _thank_you(base_url: str, order_ids: List[str], session_id: str) -> str:
    return build_redirect(
        base_url,
        CHECKOUT_THANK_YOU_PATH,
        orderId=",".join(order_ids),
        session_id=session_id,
        order_created="true",
    )

def _process(session_id: Optional[str], base_url: str, dispatcher: SideEffectDispatcher) -> str:
    session = verify_session(session_id)

    already = stripe_client.fulfilled_order_ids(session)
    if already:
        logger.info("checkout.service.fulfill_session already fulfilled session_id=%s order_ids=%s", session_id, already)
        return _thank_you(base_url, already, session_id)

    raw_items = decode_items(session, session_id)
    meta = session.get("metadata") or {}
    payload_defaults = {"user_id": meta.get("userId") or "", "email": meta.get("userEmail") or ""}

    result = fan_out(raw_items, payload_defaults, session_id, dispatcher)
    if not result.order_ids:
        raise TotalFailureError(result.last_error or UNKNOWN_FAILURE, session_id=session_id)

    temp_assets.cleanup(result.cleanup_paths)
    if meta.get("source") == CART_SOURCE:
        dispatcher.clear_cart(payload_defaults["user_id"])
    stripe_client.mark_session_fulfilled(session, result.order_ids)
    logger.info(
        "checkout.service.fulfill_session done session_id=%s created=%s/%s",
        session_id, result.succeeded, result.attempted,
    )
    return _thank_you(base_url, result.order_ids, session_id)

def fulfill_session(session_id: Optional[str], base_url: str, *, dispatcher: Optional[SideEffectDispatcher] = None) -> str:
    """
    Transforme une session Stripe payée en commandes et retourne l'URL de redirection.
    - Succès (au moins une commande): /thank-you?orderId=<ids>&session_id=<id>&order_created=true
    - Erreur terminale: /success?... (paramètres portés par l'erreur)
    - Erreur inattendue: /success?order_created=false&error=Processing error
    Ne lève jamais.
    """
    dispatcher = dispatcher or SideEffectDispatcher()
    try:
        return _process(session_id, base_url, dispatcher)
    except FulfillmentError as e:
        logger.warning("checkout.service.fulfill_session stopped session_id=%s: %s", session_id, e.message)
        return build_redirect(base_url, CHECKOUT_RESULT_PATH, **e.redirect_params)
    except Exception:
        logger.exception("checkout.service.fulfill_session failed session_id=%s", session_id)
        return build_redirect(base_url, CHECKOUT_RESULT_PATH, order_created="false", error=PROCESSING_ERROR)
