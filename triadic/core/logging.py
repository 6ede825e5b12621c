"""Structured logging configuration."""

import logging
import sys

from triadic.core.config import settings

# Context attached through ``extra=`` by engines and the audit logger
CONTEXT_FIELDS = ("engine", "bundle_id", "action")

PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class StructuredFormatter(logging.Formatter):
    """Render records as one ``key=value`` line.

    Context fields are appended only when the record carries them.
    """

    def format(self, record: logging.LogRecord) -> str:
        fields = [
            ("timestamp", self.formatTime(record, self.datefmt)),
            ("level", record.levelname),
            ("logger", record.name),
            ("message", record.getMessage()),
        ]
        fields.extend(
            (name, getattr(record, name)) for name in CONTEXT_FIELDS if hasattr(record, name)
        )
        if record.exc_info:
            fields.append(("exception", self.formatException(record.exc_info)))

        return " ".join(f"{key}={value}" for key, value in fields)


def setup_logging(level: str | None = None) -> logging.Logger:
    """Attach a stdout handler to the ``triadic`` logger.

    The root logger is left alone so host applications keep their own
    configuration. Calling this again replaces the previous handler.
    """
    name = (level or settings.log_level).upper()
    log_level = getattr(logging, name, logging.INFO)

    package_logger = logging.getLogger("triadic")
    package_logger.setLevel(log_level)
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(PLAIN_FORMAT) if settings.is_dev else StructuredFormatter())
    package_logger.addHandler(handler)
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)


class DecisionAuditLogger:
    """Logger for per-evaluation audit events.

    Records which engine decided what and how the bundle verified.
    Input values are never written to the audit log.
    """

    def __init__(self) -> None:
        self.logger = get_logger("triadic.audit")

    def log_decision(
        self,
        engine: str,
        bundle_id: str,
        outcome: str,
        overall_result: str,
        merkle_root: str,
        triggered_rules: int,
    ) -> None:
        """Log a completed evaluation."""
        extra = {"engine": engine, "bundle_id": bundle_id, "action": "decision.evaluated"}
        self.logger.info(
            f"AUDIT: engine={engine} bundle={bundle_id} outcome={outcome} "
            f"triggered={triggered_rules} result={overall_result} merkle_root={merkle_root}",
            extra=extra,
        )
        if overall_result != "VERIFIED":
            self.logger.warning(
                f"Bundle {bundle_id} failed verification (engine={engine})",
                extra=extra,
            )


audit_logger = DecisionAuditLogger()
