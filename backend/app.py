# module backend.app
"""
Instance globale de l’application.
Toute la configuration (middlewares, lifespan, handlers, routers) est portée par
backend.app_setup.factory.create_app().
"""
from backend.app_setup.factory import create_app

# App globale
app = create_app()
