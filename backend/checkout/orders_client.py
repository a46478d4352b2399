"""
Client de l'API de gestion des commandes.

- build_submission: formulaire multipart canonique + fichiers stagés d'une ligne
- submit_order: POST /api/orders, lève ItemSubmissionError en cas d'échec
- extract_order_id: sonde toutes les formes de réponse connues
- clear_cart: DELETE /api/cart/clear/{user_id}
"""
import logging
import mimetypes
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import httpx

from backend.config import api_url
from backend.infra import http_client

from . import temp_assets
from .errors import ItemSubmissionError
from .normalizer import OrderLineItem

logger = logging.getLogger(__name__)

# Ordre de sondage de l'identifiant de commande dans la réponse
ORDER_ID_PATHS: Tuple[Tuple[str, ...], ...] = (
    ("order", "id"),
    ("orderId",),
    ("id",),
    ("data", "id"),
    ("data", "order", "id"),
    ("order_id",),
)

FileField = Tuple[str, Tuple[str, bytes, str]]


@dataclass
class OrderSubmission:
    data: Dict[str, str]
    files: List[FileField] = field(default_factory=list)
    staged_paths: List[str] = field(default_factory=list)


# module backend.checkout.orders_client
def backend_file_field(field_name: str) -> str:
    """host_0 -> host_file, host_<n> -> host_file_<n>; les autres champs sont inchangés."""
    if field_name.startswith("host_") and not field_name.startswith("host_file"):
        suffix = field_name.split("_", 1)[1]
        try:
            index = int(suffix)
        except ValueError:
            return field_name
        return "host_file" if index == 0 else f"host_file_{index}"
    return field_name

def _mime_type(path: str) -> str:
    guessed, _ = mimetypes.guess_type(path)
    return guessed or "application/octet-stream"

def _bool(value: bool) -> str:
    return "true" if value else "false"

def _price(value: float) -> str:
    return str(int(value)) if value == int(value) else repr(value)

def build_form_fields(item: OrderLineItem) -> Dict[str, str]:
    """Champs texte du formulaire multipart attendu par le backend."""
    total = _price(item.total_price)
    fields = {
        "presenting": item.presenting,
        "event_title": item.event_title,
        "event_date": item.event_date,
        "flyer_info": item.flyer_info,
        "address_phone": item.address_phone,
        "story_size_version": _bool(item.story_size_version),
        "custom_flyer": _bool(item.custom_flyer),
        "animated_flyer": _bool(item.animated_flyer),
        "instagram_post_size": _bool(item.instagram_post_size),
        "delivery_time": item.delivery_time,
        "custom_notes": item.custom_notes,
        "flyer_is": item.flyer_id,
        "category_id": item.category_id,
        "user_id": item.user_id,
        "web_user_id": item.user_id,
        "email": item.email,
        "total_price": total,
        # Doublon historique avec espace initial, conservé pour compatibilité backend
        " total_price": total,
        "subtotal": _price(item.subtotal),
        "image_url": item.image_url or "",
        "djs": item.djs.to_json(),
        "host": item.host.first().model_dump_json(exclude_none=True),
        "sponsors": item.sponsors.to_json(),
        "venue_text": item.venue_text,
        "venue_logo_url": item.venue_logo_url,
    }
    if item.venue_logo_url.lower().startswith(("http://", "https://")):
        fields["venue_logo"] = item.venue_logo_url
    return fields

def build_submission(item: OrderLineItem) -> OrderSubmission:
    """
    Fusionne les champs normalisés et les fichiers stagés de la ligne.
    - Un fichier stagé illisible ou hors répertoire temporaire est ignoré (journalisé).
    """
    submission = OrderSubmission(data=build_form_fields(item))
    for field_name, path in item.temp_files.items():
        content = temp_assets.read_staged(path)
        if content is None:
            logger.warning("checkout.orders_client.build_submission missing staged file field=%s path=%s", field_name, path)
            continue
        submission.files.append((backend_file_field(field_name), (os.path.basename(path), content, _mime_type(path))))
        submission.staged_paths.append(path)
    return submission

def _dig(data: Any, path: Tuple[str, ...]) -> Any:
    current = data
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current

def extract_order_id(body: Any) -> Optional[str]:
    """Premier identifiant non vide parmi order.id, orderId, id, data.id, data.order.id, order_id."""
    for path in ORDER_ID_PATHS:
        value = _dig(body, path)
        if value is not None and value != "" and not isinstance(value, (dict, list)):
            return str(value)
    return None

def submit_order(submission: OrderSubmission, *, idempotency_key: Optional[str] = None) -> str:
    """
    Soumet une commande au backend et retourne son identifiant.
    Lève ItemSubmissionError: erreur réseau, statut non 2xx, success=false, réponse sans ID.
    """
    headers = {"Idempotency-Key": idempotency_key} if idempotency_key else {}
    try:
        resp = http_client.request_with_retry(
            "POST",
            api_url("/api/orders"),
            data=submission.data,
            files=submission.files or None,
            headers=headers,
            idempotent=False,
        )
    except httpx.HTTPError as e:
        raise ItemSubmissionError(f"Order API unreachable: {e}")

    if not 200 <= resp.status_code < 300:
        raise ItemSubmissionError(f"Backend API error ({resp.status_code}): {resp.text[:200]}")

    try:
        body = resp.json()
    except ValueError:
        raise ItemSubmissionError("Backend API returned a non-JSON response")

    if isinstance(body, dict) and body.get("success") is False:
        raise ItemSubmissionError(str(body.get("message") or body.get("error") or "Backend reported success=false"))

    order_id = extract_order_id(body)
    if not order_id:
        raise ItemSubmissionError("No order id in backend response")
    return order_id

def clear_cart(user_id: str) -> None:
    """Vide le panier de l'utilisateur. Lève httpx.HTTPError en cas d'échec."""
    resp = http_client.request_with_retry("DELETE", api_url(f"/api/cart/clear/{user_id}"))
    resp.raise_for_status()
