from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    # Persistence
    HEALING_DB_PATH: str = Field(default="data/self_healing.db", description="SQLite file holding fingerprints and healing history")
    MAX_HISTORY_ITEMS: int = Field(default=1000, description="Maximum number of healing history entries kept before FIFO eviction")

    # Self-healing configuration file
    SELF_HEALING_CONFIG_PATH: str = Field(default="config/self_healing.yaml", description="Path to the self-healing YAML configuration")
    SELF_HEALING_ENABLED: bool = Field(default=True, description="Global kill switch; overrides the YAML 'enabled' flag when false")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Log level for the healing loggers")
    LOG_DIR: str = Field(default="logs", description="Directory for rotating healing log files")

    @field_validator('MAX_HISTORY_ITEMS')
    @classmethod
    def validate_max_history_items(cls, v):
        """Validate that MAX_HISTORY_ITEMS is between 1 and 100000."""
        if v < 1 or v > 100000:
            raise ValueError(f"MAX_HISTORY_ITEMS must be between 1 and 100000, got {v}")
        return v

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        """Validate that LOG_LEVEL is a standard logging level name."""
        if v.upper() not in ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']:
            raise ValueError(f"LOG_LEVEL must be a standard logging level, got '{v}'")
        return v.upper()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding='utf-8',
        extra='ignore'
    )


settings = Settings()
