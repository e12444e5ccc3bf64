from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from lockerhub.core.tokens import DEFAULT_LENGTH, HUMAN_ALPHABET


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LOCKERHUB_")

    database_url: str = "sqlite+pysqlite:///./lockerhub.db"
    catalog_path: Path = Path(__file__).resolve().parent / "catalog.yaml"

    handoff_token_alphabet: str = HUMAN_ALPHABET
    handoff_token_length: int = DEFAULT_LENGTH
    pickup_otp_alphabet: str = HUMAN_ALPHABET
    pickup_otp_length: int = DEFAULT_LENGTH

    overtime_monitor_enabled: bool = True
    overtime_sweep_interval_sec: float = 60.0

    log_level: str = "INFO"


settings = Settings()
