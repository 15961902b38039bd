"""
Centralized configuration for the inventory client
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Inventory service API
API_CONFIG = {
    "base_url": os.getenv("INVENTORY_API_URL", "http://localhost:8080"),
    "request_timeout": float(os.getenv("INVENTORY_API_TIMEOUT", "10")),  # Seconds
    "endpoints": {
        "login": "/login",
        "products": "/api/productos",
        "sync_products": "/sync-products",
        "stock_movements": "/stock-movements",
    },
}

# Product listing / query coordination
QUERY_CONFIG = {
    "debounce_ms": 300,  # Quiescence window for search/category edits
    "default_page_size": 10,
    "page_sizes": [5, 10, 20, 50],
    "sort_by": "fechaRegistro",  # Registration date
    "sort_dir": "desc",
}

# Locally persisted session
SESSION_CONFIG = {
    "token_key": "auth_token",
    "username_key": "username",
    "store_path": os.getenv("INVENTORY_SESSION_FILE", "./.inventory/session.json"),
}

# Navigation
ROUTES_CONFIG = {
    "login": "/login",
    "default": "/productos",
    "protected": [
        "/productos",
        "/productos/new",
        "/productos/edit/:id",
        "/stock-movements",
    ],
}

# Form limits
FORM_CONFIG = {
    "product": {
        "name": {"min_length": 3, "max_length": 100},
        "category": {"min_length": 3, "max_length": 50},
        "supplier": {"min_length": 3, "max_length": 100},
        "price": {"min": 0.01, "max": 999999.99},
        "stock": {"min": 0, "max": 1000000},
    },
    "stock_movement": {
        "quantity": {"min": 1, "max": 1000000},
    },
}

# Logging configuration
LOGGING_CONFIG = {
    "log_level": os.getenv("LOG_LEVEL", "INFO"),
    "log_dir": os.getenv("LOG_DIR", "./logs"),
    "enable_file_logging": os.getenv("ENABLE_FILE_LOGGING", "true").lower() == "true",
    "enable_console_logging": os.getenv("ENABLE_CONSOLE_LOGGING", "true").lower() == "true",
    "structured_logging": os.getenv("ENVIRONMENT", "development").lower() == "production",
    "max_log_size_mb": int(os.getenv("MAX_LOG_SIZE_MB", "10")),
    "backup_count": int(os.getenv("LOG_BACKUP_COUNT", "5")),
}
