#!/usr/bin/env python3
# backend/run.py
"""
Development server runner for the FitBook API.
For local development only; production runs uvicorn behind a process manager.
"""
import os
from pathlib import Path
import sys

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

os.environ.setdefault("ENVIRONMENT", "development")

import uvicorn

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    print(f"Starting FitBook API on http://localhost:{port}")
    print(f"API docs at http://localhost:{port}/docs")

    uvicorn.run("fitbook.main:app", host="0.0.0.0", port=port, reload=True, log_level="info")
