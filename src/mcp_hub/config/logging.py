"""
Configuration du logging de MCP Hub.

Un seul handler stderr sur le logger `mcp_hub`: stdout reste réservé au flux
JSON-RPC du transport stdio.
"""
import logging
import sys
from typing import Union

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    Configure le logger racine du package.

    Appels répétés: le handler précédent est remplacé, jamais dupliqué.
    """
    logger = logging.getLogger("mcp_hub")
    logger.setLevel(level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
