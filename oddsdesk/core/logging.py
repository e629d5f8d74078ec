import logging, sys
from typing import Optional

LEVEL = logging.INFO


def configure_logging(level: Optional[str] = None) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    root = logging.getLogger()
    root.setLevel(logging.getLevelName(level.upper()) if level else LEVEL)
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
