"""
Run the API with uvicorn.

Usage:
    python -m src.api

Env vars:
- HOST: bind address (default 0.0.0.0)
- PORT: listen port (default 3000)
"""
from __future__ import annotations

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "src.api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
