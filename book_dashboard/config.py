import logging
import os
from dataclasses import dataclass, field
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

@dataclass
class Settings:
    # Backend API settings
    api_base_url: str = os.getenv("BOOK_API_BASE_URL", "http://localhost:8080/api/books")
    request_timeout: float = float(os.getenv("REQUEST_TIMEOUT", "10"))

    # Dev server settings
    dev_server_host: str = os.getenv("DEV_SERVER_HOST", "127.0.0.1")
    dev_server_port: int = int(os.getenv("PORT", "3000"))
    static_dir: str = os.getenv("STATIC_DIR", ".")
    index_file: str = os.getenv("INDEX_FILE", "src/index.html")
    cors_origins: list = field(default_factory=lambda: ["http://localhost:3000", "http://localhost:8080"])

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Book Dashboard")
    log_level: str = os.getenv("LOG_LEVEL", "WARNING")
    debug: bool = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")
    # Output mode for the CLI: plain | json | rich
    output_mode: Optional[str] = os.getenv("LIB_CLI_OUTPUT")

    @property
    def logging_level(self) -> int:
        """LOG_LEVEL as a logging constant; unknown names fall back to WARNING."""
        level = logging.getLevelName(str(self.log_level).upper())
        return level if isinstance(level, int) else logging.WARNING


settings = Settings()
