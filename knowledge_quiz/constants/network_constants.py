"""Network configuration constants for the quiz application."""

DEFAULT_HOST: str = "127.0.0.1"
DEFAULT_PORT: int = 8000
QUESTION_BANK_TIMEOUT_SECONDS: float = 10.0
CATALOG_CACHE_SECONDS: float = 5 * 60
