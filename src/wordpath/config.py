"""Configuration settings for the progression engine."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)

# Task kinds a level can be tagged with
TASK_KINDS = ("flash", "test", "dictation")


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///wordpath.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class ProgressionSettings:
    """Grading and unlock settings."""
    default_required_score: float = float(os.getenv("DEFAULT_REQUIRED_SCORE", "80"))
    max_quality: int = int(os.getenv("MAX_QUALITY", "5"))
    max_score: float = float(os.getenv("MAX_SCORE", "100"))
    review_options: int = int(os.getenv("REVIEW_OPTIONS", "3"))
    module_completed_achievement: str = "module_completed"


@dataclass
class MonitoringSettings:
    """Prometheus exporter settings."""
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_progression_settings() -> ProgressionSettings:
    """Get progression settings."""
    return ProgressionSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    progression: ProgressionSettings = field(default_factory=get_progression_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if not self.database.url:
            raise ValueError("DATABASE_URL is required")

        if self.progression.max_score <= 0:
            raise ValueError("MAX_SCORE must be positive")

        if self.progression.default_required_score <= 0 or \
           self.progression.default_required_score > self.progression.max_score:
            raise ValueError("DEFAULT_REQUIRED_SCORE must be between 0 and MAX_SCORE")

        if self.progression.max_quality < 1:
            raise ValueError("MAX_QUALITY must be positive")

        if self.progression.review_options < 0:
            raise ValueError("REVIEW_OPTIONS cannot be negative")

        if not 0 < self.monitoring.port < 65536:
            raise ValueError("METRICS_PORT must be between 1 and 65535")


# Create global settings instance
settings = Settings()
settings.validate()
