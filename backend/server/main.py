"""
Development server entry point.

    career-interview-server          (installed console script)

Production deployments point uvicorn / gunicorn at server.asgi:app.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import uvicorn
from dotenv import load_dotenv

from config import AppConfig


def uvicorn_options(config: AppConfig) -> dict[str, Any]:
    """Server options derived from the deployment config."""
    return {
        "app_dir": str(Path(__file__).resolve().parents[1]),
        "host": os.environ.get("HOST", "0.0.0.0"),
        "port": int(os.environ.get("PORT", "8000")),
        "log_level": config.log_level.lower(),
        "reload": config.env == "dev",  # Dev mode only
    }


def main() -> None:
    load_dotenv()
    uvicorn.run("server.asgi:app", **uvicorn_options(AppConfig.load_from_env()))


if __name__ == "__main__":
    main()
