#!/usr/bin/env python3
"""
List Gemini models that support generateContent.

Useful for picking a value for GEMINI_LLM_MODEL. Reads GOOGLE_API_KEY from the
environment (or .env). Run from project root:

    python scripts/list_models.py
    python scripts/list_models.py --json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Project root on path so "navigator" resolves
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from navigator.agent.llm import list_gemini_models
from navigator.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="List Gemini models that support generateContent.")
    parser.add_argument("--json", action="store_true", help="Print the list as JSON.")
    args = parser.parse_args()
    logging.basicConfig(level=logging.WARNING)

    try:
        models = list_gemini_models()
    except ServiceUnavailableError as e:
        logger.error("Failed to fetch models: %s", e.message)
        return 1

    if args.json:
        print(json.dumps(models, indent=2))
        return 0
    print("Available models that support 'generateContent':")
    for m in models:
        print(f"- {m['name']} ({m['display_name']})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
