#!/usr/bin/env python3
# backend/run.py
"""
Development server runner.

Reads configuration from backend/.env (see app.core.config) and serves the
API with auto-reload. Production runs uvicorn (or gunicorn with uvicorn
workers) against ``app.main:app`` directly.
"""
import logging
import os
from pathlib import Path
import sys

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

import uvicorn  # noqa: E402

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    port = int(os.getenv("PORT", "8000"))
    logger.info(f"Starting development server at http://localhost:{port} (docs at /docs)")
    uvicorn.run("app.main:app", host="0.0.0.0", port=port, reload=True, log_level="info")
