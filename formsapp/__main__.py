"""
Run the forms backend with uvicorn.

Example:
  python -m formsapp --port 5000
"""

from __future__ import annotations

import argparse

import uvicorn

from formsapp.config import get_settings


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Run the forms API server.")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument(
        "--reload", action="store_true", help="Reload on code changes (development)."
    )
    args = parser.parse_args()

    uvicorn.run(
        "formsapp.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
