from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from swap_history.config import Config


def add_cors_middleware(app: FastAPI) -> None:
    """Attach CORS handling for the origins listed in ``CORS_ORIGINS``."""
    origins = [origin.strip() for origin in Config.CORS_ORIGINS.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
