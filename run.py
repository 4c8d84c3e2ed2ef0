#!/usr/bin/env python3
"""Run script for FIVLO."""

import logging
import os

import uvicorn

from fivlo.database.database import init_db

if __name__ == "__main__":
    logging.basicConfig(
        level=logging.DEBUG if os.getenv("DEBUG", "False").lower() == "true" else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    init_db()
    uvicorn.run(
        "fivlo.api.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True
    )
