"""
Entrée ASGI: `uvicorn tourbooking.asgi:app` (ou gunicorn avec workers uvicorn).
Toute la configuration vit dans tourbooking.app_setup.factory.
"""
from tourbooking.app import app

__all__ = ["app"]
