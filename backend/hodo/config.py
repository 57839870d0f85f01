"""Backend configuration with explicit args > env var > defaults precedence."""

import os
import sys
from dataclasses import dataclass
from pathlib import Path


APP_NAME = "Hodo"

# Used when JWT_SECRET is unset. Credentials signed with it are forgeable.
INSECURE_DEFAULT_SECRET = "your-secret-key-change-in-production"


def default_data_dir() -> Path:
    """Per-platform user data directory shared with the desktop shell."""
    if sys.platform == "win32":
        return Path(os.getenv("APPDATA", "")) / APP_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME
    return Path.home() / ".config" / APP_NAME


@dataclass
class Settings:
    """Process-wide configuration, loaded once at startup and injected."""
    database_url: str = ""
    jwt_secret: str = ""
    data_dir: Path | None = None
    private_key_path: Path | None = None
    log_dir: Path | None = None
    cookie_name: str = "hodo_token"
    trial_days: int = 30
    cors_origin_regex: str = r"http://(localhost|127\.0\.0\.1)(:[0-9]+)?"

    def __post_init__(self):
        if not self.database_url:
            self.database_url = os.getenv("DATABASE_URL", "postgresql://localhost/hodo")
        if not self.jwt_secret:
            self.jwt_secret = os.getenv("JWT_SECRET", INSECURE_DEFAULT_SECRET)
        if self.data_dir is None:
            env_dir = os.getenv("HODO_DATA_DIR")
            self.data_dir = Path(env_dir) if env_dir else default_data_dir()
        if self.private_key_path is None:
            env_key = os.getenv("HODO_PRIVATE_KEY_PATH")
            self.private_key_path = Path(env_key) if env_key else self.data_dir / "auth"
        if self.log_dir is None:
            env_logs = os.getenv("HODO_LOG_DIR")
            self.log_dir = Path(env_logs) if env_logs else self.data_dir / "logs"
        if self.trial_days == 30:
            env_days = os.getenv("HODO_TRIAL_DAYS")
            if env_days:
                self.trial_days = int(env_days)

    @property
    def uses_default_secret(self) -> bool:
        """True when credentials are signed with the built-in fallback secret."""
        return self.jwt_secret == INSECURE_DEFAULT_SECRET

    @property
    def issuance_log_path(self) -> Path:
        """Append-only record of minted unlock codes."""
        return self.data_dir / "data" / "unlock_code_records.txt"
