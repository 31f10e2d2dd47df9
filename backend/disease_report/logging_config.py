import logging
import sys


def configure_logging(log_level: str = "info") -> None:
    """Configure root logging once; repeated calls keep the first setup."""
    root = logging.getLogger()
    if root.handlers:
        return

    level = getattr(logging, log_level.upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)
    root.setLevel(level)

    # Suppress verbose logs from libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
