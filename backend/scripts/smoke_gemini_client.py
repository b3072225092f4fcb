"""Send one real prompt through the Gemini client and retry policy.

Usage (from repo root):
    python backend/scripts/smoke_gemini_client.py "Say hello in French"

Usage (from backend/):
    python scripts/smoke_gemini_client.py "Say hello in French"
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.config import get_settings
from app.logging_config import configure_logging
from app.services.backoff import generate_with_backoff
from app.services.gemini import get_default_gemini_client


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("prompt", nargs="?", default="Reply with a one-sentence greeting.")
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    settings = get_settings()
    configure_logging(settings.log_level)
    reply = asyncio.run(
        generate_with_backoff(
            get_default_gemini_client(),
            args.prompt,
            max_retries=settings.max_retries,
            initial_delay_seconds=settings.initial_retry_delay_seconds,
        )
    )
    print(json.dumps({"model": settings.gemini_model, "prompt": args.prompt, "response": reply}, indent=2))


if __name__ == "__main__":
    main()
