from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path("data")
    # Пустая строка - SQLite-файл внутри data_dir
    database_url: str = ""
    sql_echo: bool = False

    default_cut_ttl_seconds: float = 300
    sweep_interval_seconds: float = 30
    notify_timeout_seconds: float = 5

    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    model_config = {"env_file": ".env", "env_prefix": "CLIPCUT_", "extra": "ignore"}

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{(self.data_dir / 'clipcut.db').as_posix()}"

    @property
    def files_dir(self) -> Path:
        return self.data_dir / "files"

    @property
    def tmp_dir(self) -> Path:
        return self.data_dir / "tmp"

    @property
    def identity_file(self) -> Path:
        return self.data_dir / "device.json"


settings = Settings()
