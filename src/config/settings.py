from typing import Any, Dict, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class SafetynetSettings(BaseSettings):
    """
    Process-wide delivery guard configuration.
    Loaded once at startup from SAFETYNET_* environment variables; read-only afterwards.
    """
    model_config = SettingsConfigDict(env_prefix="SAFETYNET_", frozen=True)

    DATABASE_URL: str = "sqlite:///safetynet.db"

    # Regex tested against every address; a match always permits.
    WHITELIST: Optional[str] = None
    # {"email": {"limit": 1000, "timeframe": 3600}}; timeframe in seconds, false disables
    CHANNELS: Dict[str, Dict[str, Any]] = {}

    # Denial notifications
    NOTIFICATION_EMAIL: str = "asdf@asdf.org"
    NOTIFICATION_SENDER: Optional[str] = None
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_SSL: bool = False
    SMTP_TIMEOUT: float = 30.0
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None

    LOG_LEVEL: str = "INFO"


settings = SafetynetSettings()
