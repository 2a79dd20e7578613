import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENVIRONMENTS = ("local", "dev", "prod")


class ConfigError(RuntimeError):
    """Raised when the environment does not describe a usable configuration."""


def load_env_file(env: str) -> None:
    """Load ``.env.<env>`` if present, falling back to the default ``.env``."""
    env_file = f".env.{env}"
    if os.path.exists(env_file):
        load_dotenv(env_file)
    else:
        load_dotenv()


def _require(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise ConfigError(f"{name} is not set")
    return value


def _int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _database_url() -> str:
    if os.environ.get("DATABASE_URL"):
        return os.environ["DATABASE_URL"]
    return "postgresql://{user}:{password}@{host}:{port}/{name}".format(
        user=_require("DB_USER"),
        password=os.environ.get("DB_PASSWORD", ""),
        host=_require("DB_HOST"),
        port=_int("DB_PORT", 5432),
        name=_require("DB_NAME"),
    )


@dataclass
class Config:
    environment: str
    database_url: str
    external_cars_api_url: str
    app_port: int = 8080
    migrations_dir: Path = Path("./migrations")
    resolver_workers: int = 8
    resolver_timeout: float = 10.0

    @classmethod
    def from_env(cls) -> "Config":
        env = os.environ.get("CARSTORE_ENV", "local").lower()
        if env not in ENVIRONMENTS:
            raise ConfigError(f"CARSTORE_ENV must be one of {', '.join(ENVIRONMENTS)}, got {env!r}")
        load_env_file(env)

        resolver_workers = _int("RESOLVER_WORKERS", 8)
        if resolver_workers < 1:
            raise ConfigError("RESOLVER_WORKERS must be at least 1")

        try:
            resolver_timeout = float(os.environ.get("RESOLVER_TIMEOUT", "10"))
        except ValueError:
            raise ConfigError("RESOLVER_TIMEOUT must be a number of seconds") from None

        return cls(
            environment=env,
            database_url=_database_url(),
            external_cars_api_url=_require("EXTERNAL_CARS_API_URL"),
            app_port=_int("APP_PORT", 8080),
            migrations_dir=Path(os.environ.get("MIGRATIONS_DIR", "./migrations")),
            resolver_workers=resolver_workers,
            resolver_timeout=resolver_timeout,
        )
