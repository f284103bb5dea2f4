"""
Structured logging for viewer operations: connection lifecycle, staging and search.
"""

import logging
from typing import Any, Dict, List

class StructuredLogger:
    """Structured logger for connection, staging and query operations."""

    def __init__(self, name: str = "faiss_viewer"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_connection_event(self, event: str, state: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a connection lifecycle event (connect, disconnect, refresh, restore)."""
        log_details = {"state": state}
        if details:
            log_details.update(details)

        level = logging.ERROR if status == "failed" else logging.INFO
        self.log_operation(f"connection.{event}", status, log_details, level=level)

    def log_staging_event(self, event: str, path: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a staging file event (write, verify, cleanup)."""
        log_details = {"path": path}
        if details:
            log_details.update(details)

        level = logging.WARNING if status == "failed" else logging.DEBUG
        self.log_operation(f"staging.{event}", status, log_details, level=level)

    def log_search(self, k: int, result_count: int, duration_ms: float, status: str = "success", details: Dict[str, Any] = None):
        """Log a nearest-neighbour query."""
        log_details = {
            "k": k,
            "result_count": result_count,
            "duration_ms": round(duration_ms, 2)
        }
        if details:
            log_details.update(details)

        level = logging.ERROR if status == "failed" else logging.INFO
        self.log_operation("search", status, log_details, level=level)

    def log_bundle_parsed(self, path: str, record_count: int, payload_bytes: int):
        """Log a successfully parsed bundle."""
        self.log_operation("bundle.parse", "success", {
            "path": path,
            "record_count": record_count,
            "payload_bytes": payload_bytes
        })

    # Plain messages
    def info(self, message: str) -> None:
        self.logger.info(message)

    def warning(self, message: str) -> None:
        self.logger.warning(message)

    def error(self, message: str) -> None:
        self.logger.error(message)

    def debug(self, message: str) -> None:
        self.logger.debug(message)


# Shared viewer logger
logger = StructuredLogger()


def sanitize_details(details: Dict[str, Any], sensitive_fields: List[str] = None) -> Dict[str, Any]:
    """Truncate long values and redact record content before logging."""
    if sensitive_fields is None:
        sensitive_fields = ['content', 'vector', 'embedding', 'index']

    sanitized = {}
    for k, v in details.items():
        if k in sensitive_fields:
            sanitized[k] = "[REDACTED]"
        elif isinstance(v, str) and len(v) > 100:
            sanitized[k] = v[:97] + "..."
        else:
            sanitized[k] = v
    return sanitized
