from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path.home() / ".flashdeck" / "data"
    sqlite_filename: str = "flashdeck.db"
    quiz_question_count: int = 5  # non-positive values fall back to 5
    quiz_history_min_days: int = 7
    quiz_history_max_days: int = 30
    default_category_name: str = "General"
    log_level: str = "warning"

    model_config = {"env_prefix": "FLASHDECK_"}


settings = Settings()
