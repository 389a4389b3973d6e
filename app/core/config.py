from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str
    # If DEV and you hit SSL cert issues on the pooler, set DB_SSL_VERIFY=false in .env
    DB_SSL_VERIFY: bool = True

    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    ENV: str = "dev"  # "dev" or "prod"
    LOG_LEVEL: str = "INFO"

    # --- BOOTSTRAP ---
    SUPER_ADMIN_EMAIL: str | None = None
    SUPER_ADMIN_NAME: str | None = "Super Admin"

    # --- PERFORMANCE DIAGNOSTICS ---
    PERF_BUFFER_SIZE: int = 1000   # ring buffer of recent request samples
    SLOW_REQUEST_MS: int = 5000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
