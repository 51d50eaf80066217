from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False
    log_level: str = "INFO"
    rounds_db_path: str = "data/rounds.db"  # Path relative to backend root, or absolute (run scripts/load_rounds.py first)


def get_settings() -> Settings:
    return Settings()
