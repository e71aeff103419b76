"""
MemHub Server Entry Point

Run with: python main.py
Or with uvicorn: uvicorn app:app --reload

MEMHUB_HOST and MEMHUB_PORT choose the bind address.
"""

import os

import uvicorn

if __name__ == "__main__":
    is_dev = os.getenv("ENVIRONMENT", "development") == "development"

    uvicorn.run(
        "app:app",
        host=os.getenv("MEMHUB_HOST", "0.0.0.0"),
        port=int(os.getenv("MEMHUB_PORT", "8000")),
        reload=is_dev,
        log_level="info",
    )
