import logging
import logging.config
from pathlib import Path


def configure_logging(cfg: dict) -> None:
    """Apply the config's logging section, falling back to console-only logging."""
    log_cfg = cfg.get("logging", {})
    try:
        file_h = log_cfg.get("handlers", {}).get("file", {})
        if file_h.get("filename"):
            log_path = Path(file_h["filename"])
            if not log_path.is_absolute():
                log_path = Path(cfg.get("root_path", ".")) / log_path
                file_h["filename"] = str(log_path)
            log_path.parent.mkdir(parents=True, exist_ok=True)
        logging.config.dictConfig(log_cfg)
    except (ValueError, TypeError, AttributeError, ImportError, OSError) as e:
        logging.basicConfig(level=logging.INFO,
                            format="%(asctime)s %(levelname)-8s %(message)s")
        logging.warning(
            "Could not configure file logging, using console only: %s", e)
