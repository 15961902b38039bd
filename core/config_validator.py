"""
Configuration validation run on startup.

Collects errors (which stop the client) and warnings (which are only
logged) so a misconfiguration is reported in one pass.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from .exceptions import ConfigValidationError
from .logging_config import get_logger

logger = get_logger(__name__)

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ConfigValidator:
    """Validates client configuration dictionaries"""

    def __init__(self,
                 api_config: Optional[Dict[str, Any]] = None,
                 query_config: Optional[Dict[str, Any]] = None,
                 session_config: Optional[Dict[str, Any]] = None,
                 logging_config: Optional[Dict[str, Any]] = None):
        # Defaults come from config.py; tests pass their own dictionaries
        if None in (api_config, query_config, session_config, logging_config):
            import config
            api_config = api_config if api_config is not None else config.API_CONFIG
            query_config = query_config if query_config is not None else config.QUERY_CONFIG
            session_config = session_config if session_config is not None else config.SESSION_CONFIG
            logging_config = logging_config if logging_config is not None else config.LOGGING_CONFIG

        self.api_config = api_config
        self.query_config = query_config
        self.session_config = session_config
        self.logging_config = logging_config

        self.errors: List[str] = []
        self.warnings: List[str] = []

    def validate_all(self) -> Tuple[bool, List[str], List[str]]:
        """
        Returns:
            Tuple of (is_valid, errors, warnings)
        """
        self.errors.clear()
        self.warnings.clear()

        self._validate_api_config()
        self._validate_query_config()
        self._validate_session_config()
        self._validate_logging_config()

        return len(self.errors) == 0, self.errors.copy(), self.warnings.copy()

    def _validate_api_config(self):
        base_url = self.api_config.get("base_url", "")
        parsed = urlparse(base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            self.errors.append(f"API base URL has invalid format: {base_url!r}")
        elif parsed.scheme == "http" and os.getenv("ENVIRONMENT", "development").lower() == "production":
            self.warnings.append("API base URL uses plain HTTP in production; session tokens travel unencrypted")

        timeout = self.api_config.get("request_timeout", 10.0)
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            self.errors.append(f"Request timeout must be a positive number of seconds, got {timeout!r}")
        elif timeout < 1.0 or timeout > 60.0:
            self.warnings.append(f"Request timeout {timeout}s may be too {'low' if timeout < 1 else 'high'}. Recommended: 5-30s")

        for name, path in self.api_config.get("endpoints", {}).items():
            if not isinstance(path, str) or not path.startswith("/"):
                self.errors.append(f"Endpoint '{name}' must be an absolute path, got {path!r}")

    def _validate_query_config(self):
        debounce_ms = self.query_config.get("debounce_ms", 300)
        if not isinstance(debounce_ms, (int, float)) or debounce_ms < 0:
            self.errors.append(f"Debounce window must be >= 0 ms, got {debounce_ms!r}")
        elif debounce_ms > 2000:
            self.warnings.append(f"Debounce window {debounce_ms}ms will make search feel unresponsive")

        page_sizes = self.query_config.get("page_sizes", [])
        if not page_sizes or any(not isinstance(s, int) or s <= 0 for s in page_sizes):
            self.errors.append(f"Page sizes must be positive integers, got {page_sizes!r}")

        default_size = self.query_config.get("default_page_size")
        if page_sizes and default_size not in page_sizes:
            self.warnings.append(f"Default page size {default_size} is not one of the selectable sizes {page_sizes}")

        sort_dir = self.query_config.get("sort_dir", "desc")
        if sort_dir not in ("asc", "desc"):
            self.errors.append(f"Sort direction must be 'asc' or 'desc', got {sort_dir!r}")

    def _validate_session_config(self):
        if self.session_config.get("token_key") == self.session_config.get("username_key"):
            self.errors.append("Session token and username must use different store keys")

        store_path = self.session_config.get("store_path")
        if not store_path:
            self.errors.append("Session store path is not set")
            return

        # The store creates its own directory; its nearest existing ancestor must be writable
        ancestor = Path(store_path).resolve().parent
        while not ancestor.exists() and ancestor != ancestor.parent:
            ancestor = ancestor.parent
        if not os.access(ancestor, os.W_OK):
            self.errors.append(f"Session store directory '{ancestor}' is not writable")

    def _validate_logging_config(self):
        log_level = str(self.logging_config.get("log_level", "INFO"))
        if log_level.upper() not in VALID_LOG_LEVELS:
            self.errors.append(f"Invalid log level '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}")

        max_size = self.logging_config.get("max_log_size_mb", 10)
        if max_size < 1 or max_size > 1000:
            self.warnings.append(f"Log file size {max_size}MB may be {'too small' if max_size < 5 else 'too large'}. Recommended: 5-100MB")

        backup_count = self.logging_config.get("backup_count", 5)
        if backup_count < 1 or backup_count > 50:
            self.warnings.append(f"Log backup count {backup_count} may be {'too low' if backup_count < 3 else 'too high'}. Recommended: 3-20")


def validate_startup_config(validator: Optional[ConfigValidator] = None) -> List[str]:
    """
    Validate configuration and stop on errors.

    Returns:
        The warnings that were found

    Raises:
        ConfigValidationError: If critical configuration errors are found
    """
    validator = validator or ConfigValidator()
    is_valid, errors, warnings = validator.validate_all()

    for warning in warnings:
        logger.warning(f"Configuration warning: {warning}")

    if not is_valid:
        for error in errors:
            logger.error(f"Configuration error: {error}")

        error_msg = f"Found {len(errors)} configuration error(s) that must be fixed before starting the client."
        if warnings:
            error_msg += f" Also found {len(warnings)} warning(s) that should be addressed."
        raise ConfigValidationError(error_msg, {"errors": errors, "warnings": warnings})

    logger.info(f"Configuration validated with {len(warnings)} warning(s)")
    return warnings
