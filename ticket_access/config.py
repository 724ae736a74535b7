from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "sqlite+pysqlite:///./ticket_access.db"
    secret_key: str
    qr_secret_key: str
    store_timeout_seconds: float = 5.0
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_sender_name: str = "Ticket Access"
    smtp_timeout_seconds: float = 10.0
    log_level: str = "INFO"
    debug: bool = False

    model_config = SettingsConfigDict(env_file=".env", env_prefix="", frozen=True)


settings = Settings()
