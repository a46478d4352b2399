# backend.config
from pathlib import Path
import os
import tempfile
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du backend.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Stripe, API commandes, API email)
- Fournit les chemins de redirection du checkout et le répertoire des uploads temporaires
- Borne les appels HTTP sortants (timeout, nombre de tentatives)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _int_env(name: str, default: int) -> int:
    try:
        return int(_clean_env(os.getenv(name)) or default)
    except ValueError:
        return default

def _float_env(name: str, default: float) -> float:
    try:
        return float(_clean_env(os.getenv(name)) or default)
    except ValueError:
        return default

# Cookies / en-têtes de sécurité
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]

# Stripe: clé secrète et tentatives réseau du SDK
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_MAX_NETWORK_RETRIES = _int_env("STRIPE_MAX_NETWORK_RETRIES", 2)
CHECKOUT_CURRENCY = _clean_env(os.getenv("CHECKOUT_CURRENCY") or "usd").lower()

# URL publique du storefront (origine des redirections Stripe).
# Vide ou 0.0.0.0 => résolue depuis les en-têtes de la requête (voir session_builder).
PUBLIC_BASE_URL = _clean_env(os.getenv("PUBLIC_BASE_URL") or os.getenv("NEXT_PUBLIC_BASE_URL") or "")

# Pages terminales du checkout
CHECKOUT_RESULT_PATH = os.getenv("CHECKOUT_RESULT_PATH", "/success")
CHECKOUT_THANK_YOU_PATH = os.getenv("CHECKOUT_THANK_YOU_PATH", "/thank-you")

# API de gestion des commandes (création de commandes, vidage du panier)
ORDER_API_BASE_URL = _clean_env(
    os.getenv("ORDER_API_BASE_URL") or os.getenv("BACKEND_API_BASE_URL") or "http://localhost:3007"
).rstrip("/")

# API email transactionnel
EMAIL_API_URL = _clean_env(os.getenv("EMAIL_API_URL") or "")
EMAIL_API_KEY = _clean_env(os.getenv("EMAIL_API_KEY") or "")
EMAIL_FROM = _clean_env(os.getenv("EMAIL_FROM") or "no-reply@localhost")

# Uploads temporaires (assets du formulaire en attente de commande)
TEMP_UPLOAD_DIR = Path(_clean_env(os.getenv("TEMP_UPLOAD_DIR")) or Path(tempfile.gettempdir()) / "flyer-uploads")
TEMP_UPLOAD_MAX_BYTES = _int_env("TEMP_UPLOAD_MAX_BYTES", 10 * 1024 * 1024)

# Appels HTTP sortants: timeout et tentatives bornées
HTTP_TIMEOUT_SECONDS = _float_env("HTTP_TIMEOUT_SECONDS", 10.0)
HTTP_MAX_RETRIES = _int_env("HTTP_MAX_RETRIES", 2)
HTTP_RETRY_BACKOFF_SECONDS = _float_env("HTTP_RETRY_BACKOFF_SECONDS", 0.5)


def api_url(path: str = "") -> str:
    """
    Retourne l'URL absolue d'un endpoint de l'API commandes.
    - Évite le doublon '/api' si ORDER_API_BASE_URL se termine déjà par /api.
    """
    if not path:
        return ORDER_API_BASE_URL
    clean_path = path if path.startswith("/") else f"/{path}"
    if ORDER_API_BASE_URL.endswith("/api") and clean_path.startswith("/api/"):
        clean_path = clean_path[4:]
    return f"{ORDER_API_BASE_URL}{clean_path}"
