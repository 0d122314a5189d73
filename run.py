#!/usr/bin/env python3
"""
Simple run script for RunWatch.

Usage:
    python run.py

Or with custom settings:
    HOST=127.0.0.1 PORT=8080 GITHUB_TOKEN=... python run.py
"""

import uvicorn
import os


def main():
    """Run the FastAPI application."""
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload = os.getenv("RELOAD", "true").lower() == "true"
    
    print(f"""
RunWatch - remote workflow dispatch and tracking
  Server:    http://{host}:{port}
  API Docs:  http://{host}:{port}/docs
  ReDoc:     http://{host}:{port}/redoc
    """)
    
    uvicorn.run(
        "runwatch.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
