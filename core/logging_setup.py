import logging
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(levelname)s - [{tag}] %(message)s'


def configure_logging(level: str = "INFO", log_file: Optional[str] = None, tag: str = "DISPATCH") -> None:
    """Configure root logging once, from the entry point."""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT.format(tag=tag),
        handlers=handlers,
        force=True,
    )
