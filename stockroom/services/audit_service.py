import logging
from datetime import datetime, timezone

from stockroom.config import settings

logger = logging.getLogger(__name__)


def write_audit(text: str, path: str | None = None) -> None:
    """Append one timestamped line to the audit trail.

    Never raises: a broken audit file must not change the outcome of the
    operation being recorded.
    """
    line = f"[{datetime.now(timezone.utc).isoformat()}] {text}\n"
    try:
        with open(path or settings.AUDIT_LOG_PATH, "a", encoding="utf-8") as fh:
            fh.write(line)
    except (OSError, ValueError) as e:
        logger.warning("Audit trail write failed: %s", e)
