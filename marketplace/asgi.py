"""
ASGI entrypoint: expose `app` pour les process managers
(uvicorn marketplace.asgi:app, gunicorn -k uvicorn.workers.UvicornWorker).
Le lancement direct passe par `python -m marketplace`.
"""

from marketplace.app import app

__all__ = ["app"]
