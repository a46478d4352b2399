"""
Diagnostic des dépendances du checkout (GET /health/checkout).
Aucun appel Stripe ni création de commande: configuration, DNS de l'API commandes,
répertoire des uploads temporaires et état du rate limiting.
"""
import os
import socket
from typing import Any, Dict
from urllib.parse import urlparse

from fastapi import Request

from backend.config import EMAIL_API_URL, ORDER_API_BASE_URL, STRIPE_SECRET_KEY, TEMP_UPLOAD_DIR
from backend.utils.rate_limit import rate_limit_health_info


def _dns_check(hostname: str) -> Dict[str, Any]:
    try:
        socket.getaddrinfo(hostname, 443)
        return {"dns_ok": True, "dns_error": None}
    except OSError as e:
        return {"dns_ok": False, "dns_error": str(e)}

def health_checkout_info(request: Request) -> Dict[str, Any]:
    parsed = urlparse(ORDER_API_BASE_URL) if ORDER_API_BASE_URL else None
    hostname = parsed.hostname if parsed else None

    order_api: Dict[str, Any] = {"base_url": ORDER_API_BASE_URL, "hostname": hostname, "dns_ok": None, "dns_error": None}
    if hostname:
        order_api.update(_dns_check(hostname))

    temp_dir = TEMP_UPLOAD_DIR
    return {
        "stripe_configured": bool(STRIPE_SECRET_KEY),
        "email_configured": bool(EMAIL_API_URL),
        "order_api": order_api,
        "temp_upload_dir": {
            "path": str(temp_dir),
            "exists": temp_dir.is_dir(),
            "writable": temp_dir.is_dir() and os.access(temp_dir, os.W_OK),
        },
        "rate_limit": rate_limit_health_info(request),
    }
