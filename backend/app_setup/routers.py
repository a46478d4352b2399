"""
Registre central des routers (API checkout, health).
"""
from fastapi import FastAPI
from backend.checkout import views as checkout_views
from backend.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    """
    Agrège tous les routers de l’application.
    - L’ordre n’a pas d’impact sauf conflits de chemins (évités par préfixes).
    """
    # API checkout (session Stripe, retour de paiement, uploads temporaires)
    app.include_router(checkout_views.router)
    # Health & monitoring
    app.include_router(health_router)
