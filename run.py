"""Application starter."""

import os
import sys

import uvicorn

sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from app.core.config import settings
from app.core.logging import setup_logger

logger = setup_logger(__name__)

if __name__ == "__main__":
    logger.info(f"Serving {settings.APP_NAME} on port {settings.DOCS_PORT}")
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.DOCS_PORT,
        reload=settings.DEBUG,
    )
