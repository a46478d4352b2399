"""
Client HTTP sortant (httpx) avec timeout et tentatives bornées.

Utilisé pour l'API commandes, le vidage du panier et l'API email.
- Timeout: HTTP_TIMEOUT_SECONDS
- Tentatives: HTTP_MAX_RETRIES supplémentaires sur erreur transport
  (connexion, timeout) ou statut 502/503/504, avec backoff exponentiel.
  Requêtes non idempotentes: seulement les échecs de connexion.
"""
import logging
import time
from typing import Optional

import httpx

from backend.config import HTTP_MAX_RETRIES, HTTP_RETRY_BACKOFF_SECONDS, HTTP_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {502, 503, 504}
# Échecs avant envoi: sans risque de doublon côté serveur
CONNECT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)


def build_client() -> httpx.Client:
    return httpx.Client(timeout=HTTP_TIMEOUT_SECONDS)

def _sleep(attempt: int) -> None:
    delay = HTTP_RETRY_BACKOFF_SECONDS * (2 ** attempt)
    if delay > 0:
        time.sleep(delay)

def request_with_retry(
    method: str,
    url: str,
    *,
    client: Optional[httpx.Client] = None,
    retries: Optional[int] = None,
    idempotent: bool = True,
    **kwargs,
) -> httpx.Response:
    """
    Exécute une requête HTTP avec politique de tentatives bornée.
    - client: httpx.Client injectable (tests: httpx.MockTransport)
    - retries: surcharge de HTTP_MAX_RETRIES
    - idempotent=False: nouvelle tentative uniquement si la connexion n'a pas pu
      être établie (la requête n'a pas atteint le serveur); ni timeout de lecture
      ni 502/503/504 ne sont rejoués.
    Retour: la dernière httpx.Response (y compris 5xx après épuisement des tentatives).
    Lève httpx.HTTPError si la dernière tentative échoue au niveau transport.
    """
    max_retries = HTTP_MAX_RETRIES if retries is None else retries
    retryable_errors = httpx.TransportError if idempotent else CONNECT_ERRORS
    retryable_status = RETRYABLE_STATUS if idempotent else set()
    owns_client = client is None
    if owns_client:
        client = build_client()
    try:
        attempt = 0
        while True:
            try:
                response = client.request(method, url, **kwargs)
            except retryable_errors as e:
                if attempt >= max_retries:
                    logger.error("infra.http_client %s %s failed after %s attempt(s): %s", method, url, attempt + 1, e)
                    raise
                logger.warning("infra.http_client %s %s transport error (attempt %s): %s", method, url, attempt + 1, e)
                _sleep(attempt)
                attempt += 1
                continue

            if response.status_code in retryable_status and attempt < max_retries:
                logger.warning("infra.http_client %s %s status=%s, retrying", method, url, response.status_code)
                _sleep(attempt)
                attempt += 1
                continue
            return response
    finally:
        if owns_client:
            client.close()
