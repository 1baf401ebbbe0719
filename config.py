# config.py
import logging
import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Serveur Flask (arbre interactif)
HOST = os.getenv("TREE_HOST", "127.0.0.1")
PORT = int(os.getenv("TREE_PORT", "5000"))
DEBUG = _env_bool("TREE_DEBUG")

# Service d'analyse FastAPI
REMOTE_HOST = os.getenv("TREE_REMOTE_HOST", "0.0.0.0")
REMOTE_PORT = int(os.getenv("TREE_REMOTE_PORT", "9100"))

# Sessions en mémoire : au-delà, la plus ancienne est évincée
MAX_SESSIONS = int(os.getenv("TREE_MAX_SESSIONS", "1000"))

LOG_LEVEL = os.getenv("TREE_LOG_LEVEL", "INFO").upper()


def setup_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
