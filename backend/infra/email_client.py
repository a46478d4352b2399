"""
Adaptateur de l'API email transactionnel.

send(to, subject, html, text) -> POST JSON sur EMAIL_API_URL (Bearer EMAIL_API_KEY).
Sans EMAIL_API_URL configurée, l'envoi est ignoré (avertissement dans les logs).
"""
import logging
from typing import Any, Dict, Optional

from backend.config import EMAIL_API_KEY, EMAIL_API_URL, EMAIL_FROM
from backend.infra import http_client

logger = logging.getLogger(__name__)


def is_configured() -> bool:
    return bool(EMAIL_API_URL)

def send(to: str, subject: str, html: str, text: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Envoie un email.
    Retour: corps JSON de la réponse (ex: {"id": "..."}), {} si non JSON, None si non configuré.
    Lève httpx.HTTPStatusError si l'API répond en erreur.
    """
    if not is_configured():
        logger.warning("infra.email_client.send skipped: EMAIL_API_URL manquant (to=%s)", to)
        return None

    headers = {"Content-Type": "application/json"}
    if EMAIL_API_KEY:
        headers["Authorization"] = f"Bearer {EMAIL_API_KEY}"
    body: Dict[str, Any] = {"from": EMAIL_FROM, "to": [to], "subject": subject, "html": html}
    if text:
        body["text"] = text

    resp = http_client.request_with_retry("POST", EMAIL_API_URL, json=body, headers=headers)
    resp.raise_for_status()
    try:
        return resp.json()
    except ValueError:
        return {}
