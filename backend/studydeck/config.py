from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path.home() / ".studydeck" / "data"
    sqlite_filename: str = "studydeck.db"
    host: str = "127.0.0.1"
    port: int = 0  # 0 = pick a free port
    log_level: str = "warning"

    default_easiness: float = 2.5
    minimum_easiness: float = 1.3
    schedule_horizon_days: int = 14
    review_write_retries: int = 3
    cleanup_retries: int = 3
    cleanup_retry_delay: float = 0.5  # seconds, multiplied by attempt number

    model_config = {"env_prefix": "STUDYDECK_"}


settings = Settings()
