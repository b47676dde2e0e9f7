# backend/core/env.py
import logging
import os

from dotenv import load_dotenv

_log = logging.getLogger("env_loader")

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))  # backend/
PROJECT_ROOT = os.path.dirname(BASE_DIR)


def load_env() -> str | None:
    """
    Load the first .env found in PROJECT_ROOT, backend/ or the working
    directory. Already-exported variables win. Must run before core.config
    is imported so Settings sees the values.
    """
    cand_paths = [
        os.path.join(PROJECT_ROOT, ".env"),
        os.path.join(BASE_DIR, ".env"),
        os.path.join(os.getcwd(), ".env"),
    ]
    for p in cand_paths:
        if os.path.exists(p):
            load_dotenv(p, override=False)
            _log.info("Loaded .env from: %s", p)
            return p
    return None
