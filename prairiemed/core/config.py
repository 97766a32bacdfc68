import os
from dataclasses import dataclass
from typing import Optional, List
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings:
    ENV: str = os.getenv("ENV", "local")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")
    DATABASE_ECHO: bool = _env_bool("DATABASE_ECHO")
    DATABASE_POOL_SIZE: int = int(os.getenv("DATABASE_POOL_SIZE", 20))
    DATABASE_MAX_OVERFLOW: int = int(os.getenv("DATABASE_MAX_OVERFLOW", 10))
    DATABASE_TIMEOUT_SECONDS: int = int(os.getenv("DATABASE_TIMEOUT_SECONDS", 5))

    # JWT
    JWT_ISSUER: Optional[str] = os.getenv("JWT_ISSUER")
    JWT_AUDIENCE: Optional[str] = os.getenv("JWT_AUDIENCE")
    JWT_ACCESS_TTL_SECONDS: int = int(os.getenv("JWT_ACCESS_TTL_SECONDS", 900))
    JWT_REFRESH_TTL_SECONDS: int = int(os.getenv("JWT_REFRESH_TTL_SECONDS", 60 * 60 * 24 * 30))
    JWT_ACCESS_SECRET: Optional[str] = os.getenv("JWT_ACCESS_SECRET")
    JWT_REFRESH_SECRET: Optional[str] = os.getenv("JWT_REFRESH_SECRET")
    JWT_CLOCK_SKEW_SECONDS: int = int(os.getenv("JWT_CLOCK_SKEW_SECONDS", 60))

    # Optional external identity provider (RS256 via published key set)
    AUTH_JWKS_URL: Optional[str] = os.getenv("AUTH_JWKS_URL") or None
    AUTH_JWKS_CACHE_SECONDS: int = int(os.getenv("AUTH_JWKS_CACHE_SECONDS", 300))

    # Upgrade plaintext seed passwords to argon2 on first successful login
    PASSWORD_MIGRATE_ON_LOGIN: bool = _env_bool("PASSWORD_MIGRATE_ON_LOGIN")

    # Honour X-Forwarded-For only when running behind a trusted reverse proxy
    TRUST_PROXY_HEADERS: bool = _env_bool("TRUST_PROXY_HEADERS")

    # CORS
    BACKEND_CORS_ORIGINS: Optional[str] = os.getenv("BACKEND_CORS_ORIGINS")

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = _env_bool("RATE_LIMIT_ENABLED", "True")
    RATE_LIMIT_REQUESTS: int = int(os.getenv("RATE_LIMIT_REQUESTS", 100))
    RATE_LIMIT_PERIOD_SECONDS: int = int(os.getenv("RATE_LIMIT_PERIOD_SECONDS", 60))

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in (self.BACKEND_CORS_ORIGINS or "").split(",") if o.strip()]


settings = Settings()


@dataclass(frozen=True)
class AuthConfig:
    """Read-only auth configuration handed to the token issuer and auth service.

    Built once at startup; nothing in the auth core reads ``settings`` directly.
    """

    issuer: str
    audience: str
    access_secret: str
    refresh_secret: str
    access_ttl_seconds: int = 900
    refresh_ttl_seconds: int = 60 * 60 * 24 * 30
    clock_skew_seconds: int = 60
    jwks_url: Optional[str] = None
    jwks_cache_seconds: int = 300
    migrate_legacy_passwords: bool = False
    secure_cookies: bool = False

    @classmethod
    def from_settings(cls, source: Settings = settings) -> "AuthConfig":
        required = {
            "JWT_ISSUER": source.JWT_ISSUER,
            "JWT_AUDIENCE": source.JWT_AUDIENCE,
            "JWT_ACCESS_SECRET": source.JWT_ACCESS_SECRET,
            "JWT_REFRESH_SECRET": source.JWT_REFRESH_SECRET,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise RuntimeError(f"Missing required env var(s): {', '.join(missing)}")

        return cls(
            issuer=source.JWT_ISSUER,
            audience=source.JWT_AUDIENCE,
            access_secret=source.JWT_ACCESS_SECRET,
            refresh_secret=source.JWT_REFRESH_SECRET,
            access_ttl_seconds=source.JWT_ACCESS_TTL_SECONDS,
            refresh_ttl_seconds=source.JWT_REFRESH_TTL_SECONDS,
            clock_skew_seconds=source.JWT_CLOCK_SKEW_SECONDS,
            jwks_url=source.AUTH_JWKS_URL,
            jwks_cache_seconds=source.AUTH_JWKS_CACHE_SECONDS,
            migrate_legacy_passwords=source.PASSWORD_MIGRATE_ON_LOGIN,
            secure_cookies=source.is_production,
        )
