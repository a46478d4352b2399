"""
Sérialisation/désérialisation du payload de commande dans les métadonnées Stripe.

Contraintes Stripe: 500 caractères max par valeur, 50 clés max par session.
- Payload court  -> une seule clé 'orderData' (JSON compact encodé en base64)
- Payload long   -> 'orderData_0' .. 'orderData_{n-1}' + 'chunkCount'
- Champs de confort (userId, userEmail, totalPrice, source) en clair pour l'inspection.
"""
import base64
import binascii
import json
import logging
from typing import Any, Dict, List, Optional

from .errors import DecodeError, MetadataTooLargeError

logger = logging.getLogger(__name__)

MAX_VALUE_LENGTH = 500
MAX_KEYS = 50
ORDER_DATA_KEY = "orderData"
CHUNK_COUNT_KEY = "chunkCount"

# module backend.checkout.metadata
def _chunk_key(index: int) -> str:
    return f"{ORDER_DATA_KEY}_{index}"

def to_base64(payload: Any) -> str:
    raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")

def pack(encoded: str, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """
    Range une chaîne encodée dans les clés de métadonnées.
    - Découpe uniquement au-delà de 500 caractères.
    - Lève MetadataTooLargeError si le nombre total de clés dépasse 50
      (jamais de troncature silencieuse du payload).
    """
    metadata: Dict[str, str] = {}
    for key, value in (extra or {}).items():
        # Champs purement informatifs: tronqués à la limite Stripe
        metadata[key] = str(value)[:MAX_VALUE_LENGTH]

    if len(encoded) <= MAX_VALUE_LENGTH:
        if len(metadata) + 1 > MAX_KEYS:
            raise MetadataTooLargeError(f"Trop de clés de métadonnées ({len(metadata) + 1} > {MAX_KEYS})")
        metadata[ORDER_DATA_KEY] = encoded
        return metadata

    chunks = [encoded[i:i + MAX_VALUE_LENGTH] for i in range(0, len(encoded), MAX_VALUE_LENGTH)]
    total_keys = len(metadata) + len(chunks) + 1
    if total_keys > MAX_KEYS:
        raise MetadataTooLargeError(
            f"Payload trop volumineux pour les métadonnées Stripe: {len(encoded)} caractères, "
            f"{total_keys} clés nécessaires (max {MAX_KEYS})"
        )
    metadata[CHUNK_COUNT_KEY] = str(len(chunks))
    for index, chunk in enumerate(chunks):
        metadata[_chunk_key(index)] = chunk
    logger.info("checkout.metadata.pack chunked length=%s chunks=%s", len(encoded), len(chunks))
    return metadata

def encode(payload: Dict[str, Any], *, total_price: Optional[float] = None, source: Optional[str] = None) -> Dict[str, str]:
    """
    Encode un CheckoutPayload en métadonnées Stripe.
    - payload: {userId, userEmail, items: [...]} (ou formData legacy)
    - total_price / source: champs de confort écrits en clair
    """
    extra: Dict[str, str] = {
        "userId": str(payload.get("userId") or ""),
        "userEmail": str(payload.get("userEmail") or ""),
    }
    if total_price is not None:
        extra["totalPrice"] = str(total_price)
    if source:
        extra["source"] = source
    return pack(to_base64(payload), extra)

def _join_chunks(metadata: Dict[str, Any]) -> str:
    raw_count = metadata.get(CHUNK_COUNT_KEY)
    try:
        count = int(str(raw_count).strip())
    except (TypeError, ValueError):
        raise DecodeError(f"chunkCount invalide: {raw_count!r}")
    parts: List[str] = []
    for index in range(max(count, 0)):
        chunk = metadata.get(_chunk_key(index))
        # Un fragment manquant est ignoré (troncature côté fournisseur)
        if chunk:
            parts.append(str(chunk))
        else:
            logger.warning("checkout.metadata.decode missing chunk index=%s count=%s", index, count)
    return "".join(parts)

def decode(metadata: Optional[Dict[str, Any]]) -> Any:
    """
    Reconstruit le payload depuis les métadonnées d'une session Stripe.
    - chunkCount présent: concatène orderData_0..orderData_{n-1} dans l'ordre
    - sinon: lit orderData
    Lève DecodeError si aucune donnée n'est présente ou si base64/JSON est invalide.
    """
    metadata = metadata or {}
    if metadata.get(CHUNK_COUNT_KEY) is not None:
        encoded = _join_chunks(metadata)
    else:
        encoded = str(metadata.get(ORDER_DATA_KEY) or "")

    if not encoded:
        raise DecodeError("Order data not found in metadata")

    try:
        raw = base64.b64decode(encoded, validate=True)
        return json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"Failed to decode order data: {e}")

def extract_items(payload: Any) -> List[Any]:
    """
    Liste des lignes à traiter:
    - payload['items'] si c'est une liste
    - sinon [payload['formData']] (payload legacy mono-article)
    - sinon [payload] lui-même
    """
    if isinstance(payload, dict):
        items = payload.get("items")
        if isinstance(items, list):
            return items
        form_data = payload.get("formData")
        if form_data:
            return [form_data]
    return [payload]
