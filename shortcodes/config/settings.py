"""Runtime settings."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SHORTCODES_", extra="ignore")

    app_name: str = "ShortCodes"
    env: str = "dev"
    log_level: str = "info"
    log_dir: str = "logs"
    log_file: str = "shortcodes.log"
    log_max_bytes: int = Field(default=10 * 1024 * 1024, ge=0)
    log_backup_count: int = Field(default=10, ge=0)

    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=0, le=65535)
    # "host:port"; overrides host and port when set
    listen_addr: str = Field(
        default="",
        validation_alias=AliasChoices("SHORTCODES_LISTEN_ADDR", "LISTEN_ADDR"),
    )

    # sqlite://./shortcodes.db | sqlite::memory: | postgresql://... | redis://...
    database_url: str = Field(
        default="sqlite://./shortcodes.db",
        validation_alias=AliasChoices("SHORTCODES_DATABASE_URL", "DATABASE_URL"),
    )
    sqlite_busy_timeout_ms: int = 5000
    postgres_schema: str = "public"
    redis_key_prefix: str = "shortcodes"
    redis_watch_retries: int = 16

    # 62**5 - 1 ordinals fit in the default window; raising it widens the code space
    max_code_length: int = Field(default=5, ge=2, le=11)

    def bind_address(self) -> tuple[str, int]:
        if not self.listen_addr.strip():
            return self.host, self.port
        host, sep, port = self.listen_addr.strip().rpartition(":")
        if not sep or not host or not port.isdigit() or int(port) > 65535:
            raise ValueError(f"listen address must be host:port, got {self.listen_addr!r}")
        return host.strip("[]"), int(port)


settings = Settings()
