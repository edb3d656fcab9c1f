from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    token: str = ""
    application_id: str = ""
    base_url: str = "https://discord.com/api/v10"
    timeout: float = 30.0
    max_retries: int = 3
    backoff_base: float = 1.0
    backoff_max: float = 30.0
    backoff_jitter: float = 0.25
    max_rate_limit_wait: float | None = None
    global_rate_limit: int = 50
    global_rate_window: float = 1.0
    log_format: str = "text"
    log_level: str = "INFO"

    model_config = {
        "env_prefix": "DISCORD_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
