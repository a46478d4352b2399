"""
Module 'checkout' (feature-first): point d'entrée public.
Réunit codec de métadonnées, stockage temporaire, normalisation, session Stripe,
client de l'API commandes, effets de bord et orchestration du fulfillment.
"""

from .errors import (
    CheckoutError,
    DecodeError,
    ItemSubmissionError,
    MetadataTooLargeError,
    PaymentError,
    SessionCreationError,
    TotalFailureError,
    ValidationError,
)
from .metadata import encode, decode, extract_items
from .normalizer import OrderLineItem, Person, PersonList, normalize_item, parse_price
from .session_builder import create_checkout_session, resolve_public_base_url, to_line_items
from .side_effects import SideEffectDispatcher
from .service import FulfillmentResult, fulfill_session

__all__ = [
    # errors
    "CheckoutError",
    "DecodeError",
    "ItemSubmissionError",
    "MetadataTooLargeError",
    "PaymentError",
    "SessionCreationError",
    "TotalFailureError",
    "ValidationError",
    # metadata
    "encode",
    "decode",
    "extract_items",
    # normalizer
    "OrderLineItem",
    "Person",
    "PersonList",
    "normalize_item",
    "parse_price",
    # session
    "create_checkout_session",
    "resolve_public_base_url",
    "to_line_items",
    # fulfillment
    "SideEffectDispatcher",
    "FulfillmentResult",
    "fulfill_session",
]
