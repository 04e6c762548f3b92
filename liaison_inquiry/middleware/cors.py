"""CORS middleware configuration"""
from fastapi.middleware.cors import CORSMiddleware
from liaison_inquiry.config import get_settings


def setup_cors(app):
    """
    Configure CORS middleware for the application

    The form is embedded on other sites, so origins come from settings.

    Args:
        app: FastAPI application instance
    """
    settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )
