"""
Construction des URLs terminales du checkout (page résultat, page de remerciement).
"""
from typing import Optional
from urllib.parse import urlencode


# module backend.checkout.redirects
def build_redirect(base_url: str, path: str, **params: Optional[str]) -> str:
    """
    URL absolue base_url + path avec les paramètres non nuls encodés.
    Ex: build_redirect("https://shop.test", "/success", error="payment_failed")
        -> "https://shop.test/success?error=payment_failed"
    """
    clean_path = path if path.startswith("/") else f"/{path}"
    url = f"{base_url.rstrip('/')}{clean_path}"
    query = urlencode({k: v for k, v in params.items() if v is not None})
    return f"{url}?{query}" if query else url
