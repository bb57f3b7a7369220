from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Line reconstruction / detection
    HEADER_WINDOW_LINES: int = 40
    LINE_Y_TOLERANCE: float = 3.0
    ADJACENT_LOOKAHEAD_LINES: int = 3
    # Ordered tie-break when more than one dialect's markers match
    DIALECT_PRIORITY: List[str] = ["tsys", "fiserv"]

    # Input limits
    MAX_PAGES: int = 200
    MAX_FILE_SIZE_MB: int = 20

    # Batch processing
    BATCH_MAX_WORKERS: int = 4
    EXTRACTION_TIMEOUT_SECONDS: float = 30.0

    # API
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    LOG_LEVEL: str = "INFO"

    @property
    def max_file_size_bytes(self) -> int:
        return self.MAX_FILE_SIZE_MB * 1024 * 1024

settings = Settings()
