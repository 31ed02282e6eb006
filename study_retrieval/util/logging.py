"""
Structured logging for the retrieval core.
Vector writes, searches and material lifecycle events share one log format.
"""

import logging
from typing import Any, Dict, List


class StructuredLogger:
    """Structured logger for indexing, retrieval and system-of-record operations."""

    def __init__(self, name: str = "study_retrieval"):
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

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status in ("failed", "error"):
            self.logger.error(message)
        elif status in ("degraded", "skipped"):
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_vector_operation(self, operation: str, record_id: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a vector store operation."""
        log_details = {"record_id": record_id}
        if details:
            log_details.update(sanitize_payload(details))

        self.log_operation(f"vector.{operation}", status, log_details)

    def log_retrieval(self, operation: str, query: str, result_count: int, details: Dict[str, Any] = None, status: str = "success"):
        """Log a search or context lookup."""
        log_details = {
            "query": query[:50] + "..." if len(query) > 50 else query,
            "result_count": result_count
        }
        if details:
            log_details.update(details)

        self.log_operation(f"retrieval.{operation}", status, log_details)

    def log_material_operation(self, operation: str, material_id: str, status: str = "success", details: Dict[str, Any] = None):
        """Log a system-of-record material change."""
        log_details = {"material_id": material_id}
        if details:
            log_details.update(sanitize_payload(details))

        self.log_operation(f"material.{operation}", status, log_details)

    def log_config_issue(self, issues: List[str]):
        """Log configuration problems found at start-up."""
        for issue in issues:
            self.log_operation("config.validate", "error", {"issue": issue})

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()


def sanitize_payload(payload: Any, sensitive_fields: List[str] = None) -> Any:
    """Truncate long strings and redact secrets before they reach the log."""
    if sensitive_fields is None:
        sensitive_fields = ['api_key', 'secret', 'password', 'token']

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if k in sensitive_fields:
                sanitized[k] = "[REDACTED]"
            else:
                sanitized[k] = sanitize_payload(v, sensitive_fields)
        return sanitized
    elif isinstance(payload, str):
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, sensitive_fields) for item in payload]
    else:
        return payload
