"""
Taxonomie des erreurs du checkout.

- Les erreurs « terminales » du fulfillment portent les paramètres de la redirection
  vers laquelle elles aboutissent (redirect_params), afin que toutes les sorties
  passent par le même constructeur d'URL (voir redirects.build_redirect).
- ItemSubmissionError est récupérée localement par la boucle de fan-out.
"""
from typing import Dict, Optional


class CheckoutError(Exception):
    """Erreur de base du module checkout."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class MetadataTooLargeError(CheckoutError, ValueError):
    """Le payload encodé dépasse la capacité des métadonnées Stripe (50 clés x 500 caractères)."""


class SessionCreationError(CheckoutError):
    """Stripe a refusé la session ou aucune ligne n'est payable."""


class FulfillmentError(CheckoutError):
    """Erreur terminale du fulfillment: se traduit par une redirection."""

    error_code: Optional[str] = None

    def __init__(self, message: str = "", session_id: Optional[str] = None):
        super().__init__(message)
        self.session_id = session_id

    @property
    def redirect_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.session_id:
            params["session_id"] = self.session_id
        params["error"] = self.error_code or self.message
        return params


class ValidationError(FulfillmentError):
    """Requête invalide (session_id absent). Non rejouable."""

    error_code = "missing_session_id"


class PaymentError(FulfillmentError):
    """Lecture de la session impossible ou paiement non confirmé."""

    def __init__(self, message: str = "", session_id: Optional[str] = None, error_code: Optional[str] = None):
        super().__init__(message, session_id=session_id)
        self.error_code = error_code


class DecodeError(FulfillmentError, ValueError):
    """Métadonnées corrompues ou incomplètes (corruption de données, pas de rejeu)."""


class ItemSubmissionError(CheckoutError):
    """Échec de création de commande pour une ligne: journalisé, la boucle continue."""


class TotalFailureError(FulfillmentError):
    """Aucune ligne n'a produit de commande."""

    @property
    def redirect_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.session_id:
            params["session_id"] = self.session_id
        params["order_created"] = "false"
        params["error"] = self.message
        return params
