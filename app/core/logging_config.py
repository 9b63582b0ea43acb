# app/core/logging_config.py
"""
Configuración central de logging.

- local: texto plano legible en consola
- production: un objeto JSON por línea (para agregadores de logs)
"""

import json
import logging
import sys
import traceback
from datetime import datetime
from typing import Any, Dict

LOGGER_NAME = "gestion"

logger = logging.getLogger(LOGGER_NAME)


class JSONFormatter(logging.Formatter):
    """Formatter estructurado para producción."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data, default=str, ensure_ascii=False)


def setup_logging(env: str = "local", level: str = "INFO") -> logging.Logger:
    handler = logging.StreamHandler(sys.stdout)
    if env == "production":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
        )

    root = logging.getLogger()
    # Evita handlers duplicados si se llama más de una vez (reload de uvicorn)
    for h in list(root.handlers):
        if getattr(h, "_gestion_handler", False):
            root.removeHandler(h)
    handler._gestion_handler = True
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # SQLAlchemy es muy ruidoso en INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return logger
