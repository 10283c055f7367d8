#!/usr/bin/env python3
# backend/run.py
"""
Server runner.

Reload is on everywhere except production. HOST and PORT override the bind
address.
"""
import os
from pathlib import Path
import sys
from typing import Any, Dict

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

import uvicorn

from marketplace.core.config import settings


def server_options() -> Dict[str, Any]:
    return {
        "host": os.getenv("HOST", "0.0.0.0"),
        "port": int(os.getenv("PORT", "8000")),
        "reload": not settings.is_production,
        "log_level": settings.log_level.lower(),
    }


if __name__ == "__main__":
    options = server_options()
    print(f"Starting marketplace API ({settings.environment}) on http://{options['host']}:{options['port']}")
    print(f"API Docs: http://localhost:{options['port']}/docs")

    uvicorn.run("marketplace.main:app", **options)
