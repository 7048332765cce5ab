#!/usr/bin/env python3
"""
Run the Olla API with uvicorn.

HOST / PORT come from the environment; auto-reload only outside production.
"""
import os

import uvicorn

from olla.core.config import settings


def main() -> None:
    uvicorn.run(
        "olla.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=settings.ENV.lower() != "production",
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        access_log=False,  # RequestIdMiddleware logs request.complete
    )


if __name__ == "__main__":
    main()
