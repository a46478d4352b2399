"""
Point d'entrée principal du service de checkout.

Usage:
    python -m backend

Ce mode lance uvicorn directement et lit quelques variables d'environnement:
- PORT: port d'écoute (par défaut 8000)
- UVICORN_RELOAD: active le reload auto en dev ("1"/"true"/"yes")
- LOG_LEVEL: niveau de logs uvicorn (ex: "info", "debug")
- PROXY_HEADERS: fait confiance à X-Forwarded-* (défaut "1")
"""
import uvicorn
import os

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    # Activer le reload uniquement si explicitement demandé (ex: en local)
    reload_flag = os.environ.get("UVICORN_RELOAD", "").lower() in ("1", "true", "yes")
    log_level = os.environ.get("LOG_LEVEL", "info")
    proxy_headers = os.environ.get("PROXY_HEADERS", "1").lower() in ("1", "true", "yes")
    uvicorn.run(
        "backend.asgi:app",
        host="0.0.0.0",
        port=port,
        reload=reload_flag,
        log_level=log_level,
        proxy_headers=proxy_headers,
        forwarded_allow_ips="*",
    )
