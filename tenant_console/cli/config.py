# tenant_console/cli/config.py
import os
from dotenv import load_dotenv
from pathlib import Path

# This cli/config.py file is at <project>/tenant_console/cli/config.py
# Three .parent calls navigate to the project root directory
project_root = Path(__file__).parent.parent.parent.resolve()

# Load environment variables from .env file, overriding system environment variables
load_dotenv(dotenv_path=project_root / '.env', override=True)

# Admin API the CLI talks to; falls back to the console settings when unset
CONSOLE_CLI_API_BASE_URL = os.getenv("CONSOLE_API_BASE_URL")

# Where the CLI keeps the session credential between invocations
CONSOLE_CLI_STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "sqlite")
