# tenant_console/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
import logging
from pathlib import Path

# Configure logging for settings module
logger = logging.getLogger(__name__)
if not logging.getLogger().hasHandlers():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s TENANT_CONSOLE - [%(levelname)s] - %(name)s - %(message)s'
    )

# This settings.py file is at <project>/tenant_console/settings.py
# Two .parent calls will get to the project root directory
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
DOTENV_PATH = PROJECT_ROOT / ".env"

if DOTENV_PATH.exists():
    logger.debug(f"Settings: .env file found at {DOTENV_PATH}")
else:
    logger.debug(
        f"Settings: .env file not found at {DOTENV_PATH}. "
        "Will rely on OS env vars or defaults."
    )


class Settings(BaseSettings):
    """Console settings with environment variable support."""

    app_name: str = "Tenant Console"
    debug_mode: bool = False
    console_log_level: str = "INFO"

    # Remote admin API
    console_api_base_url: str = "http://127.0.0.1:8000"
    console_api_path: str = "/global-admin.php"
    request_timeout_seconds: float = 30.0

    # Quiet period applied to search text before a directory query is sent
    search_debounce_ms: int = 300

    # Credential persistence
    credential_key: str = "ws_gadmin_token"
    storage_backend: str = "sqlite"
    sqlite_db_path: str = "./tenant_console_data.sqlite3"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None
    console_encryption_key: Optional[str] = Field(
        default=None,
        description="Fernet key for encrypting the stored credential at rest."
    )

    model_config = SettingsConfigDict(
        env_file=DOTENV_PATH if DOTENV_PATH.exists() else None,
        extra="ignore",
        env_file_encoding='utf-8'
    )

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug_mode else self.console_log_level.upper()


settings = Settings()

logger.debug(
    f"Settings loaded: api_base_url='{settings.console_api_base_url}', "
    f"storage_backend='{settings.storage_backend}', "
    f"encryption_key={'********' if settings.console_encryption_key else 'None'}"
)
