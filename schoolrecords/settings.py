from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    App settings.

    Notes:
    - Defaults are local (SQLite file + bundled security config).
    - Token verification keys come from the environment only:
      `SCHOOL_JWT_SECRET` (HS256) or `SCHOOL_JWT_PUBLIC_KEY_PATH` (RS256 PEM).
    """

    model_config = SettingsConfigDict(env_prefix="SCHOOL_", extra="ignore")

    db_url: str | None = None
    security_config_path: str | None = None
    log_level: str = "INFO"
    seed_demo_data: bool = True

    jwt_secret: str | None = None
    jwt_public_key_path: str | None = None

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "school.db"
        return f"sqlite:///{db_path}"

    def resolved_security_config_path(self) -> Path:
        if self.security_config_path:
            return Path(self.security_config_path)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "config" / "security_config.yaml"

    def resolved_verification_key(self) -> str | None:
        """Public key PEM when configured, else the shared secret, else None."""
        if self.jwt_public_key_path:
            return Path(self.jwt_public_key_path).read_text(encoding="utf-8")
        return self.jwt_secret


@lru_cache
def get_settings() -> Settings:
    return Settings()
