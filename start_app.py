#!/usr/bin/env python
"""Start the FastAPI application with port configuration from the environment."""
import os

import uvicorn

from app.core.config import get_settings

if __name__ == "__main__":
    # Get port from environment, default to 8000
    port = int(os.environ.get("PORT", 8000))
    settings = get_settings()

    print(f"Starting Order Fulfillment Engine on port {port} ({settings.ENVIRONMENT})")

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=port,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.ENVIRONMENT == "development" and settings.DEBUG,
    )
