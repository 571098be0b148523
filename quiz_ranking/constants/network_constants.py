"""Network configuration constants for the ranking service."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
DEFAULT_DATABASE_URL: str = "sqlite:///quiz_ranking.db"
