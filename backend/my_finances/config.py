import logging
import os
from dataclasses import dataclass

from .errors import ConfigurationError

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    jwt_secret: str
    database_url: str = "sqlite:///./my_finances.db"
    token_ttl_seconds: int = 60 * 60 * 24
    bcrypt_rounds: int = 10
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.jwt_secret or not self.jwt_secret.strip():
            raise ConfigurationError("Missing JWT_SECRET in environment variables")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            jwt_secret=os.getenv("JWT_SECRET", ""),
            database_url=os.getenv("DATABASE_URL", "sqlite:///./my_finances.db"),
            token_ttl_seconds=_int_env("TOKEN_TTL_SECONDS", 60 * 60 * 24),
            bcrypt_rounds=_int_env("BCRYPT_ROUNDS", 10),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)
