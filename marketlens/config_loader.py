"""
Configuration loader with environment variable support.
"""
import os
from pathlib import Path
from typing import Optional
import yaml
from pydantic import BaseModel, Field, model_validator
from dotenv import load_dotenv


# Load environment variables
load_dotenv()


class ServerConfig(BaseModel):
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = Field(default=8000, gt=0, le=65535)


class CaesarAPIConfig(BaseModel):
    """Caesar research API configuration."""
    api_key: str = Field(default="", description="Caesar API bearer token (empty = simulation mode)")
    base_url: str = "https://api.caesar.xyz"
    timeout: int = Field(default=30, gt=0)
    retry_attempts: int = Field(default=3, ge=1)
    retry_delay: int = Field(default=2, ge=0)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


class SimulationConfig(BaseModel):
    """Simulated research timeline (seconds since job creation)."""
    pending_seconds: float = Field(default=3.0, ge=0)
    complete_seconds: float = Field(default=8.0, ge=0)

    @model_validator(mode="after")
    def check_order(self) -> "SimulationConfig":
        if self.complete_seconds < self.pending_seconds:
            raise ValueError("complete_seconds must not be earlier than pending_seconds")
        return self


class ResearchConfig(BaseModel):
    """Research job lifecycle configuration."""
    # Non-terminal jobs older than this are failed on the next poll (None = never)
    max_job_age_seconds: Optional[float] = Field(default=3600.0, gt=0)


class ComparisonConfig(BaseModel):
    """Cross-platform market comparison configuration."""
    similarity_threshold: float = Field(default=60.0, ge=0, le=100, description="Question similarity threshold")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = "logs/marketlens.log"
    max_bytes: int = 10485760
    backup_count: int = 5


class Config(BaseModel):
    """Main configuration model."""
    server: ServerConfig = ServerConfig()
    caesar: CaesarAPIConfig = CaesarAPIConfig()
    simulation: SimulationConfig = SimulationConfig()
    research: ResearchConfig = ResearchConfig()
    comparison: ComparisonConfig = ComparisonConfig()
    logging: LoggingConfig = LoggingConfig()
    use_sample_data: bool = True


def load_config(config_path: str = "config/config.yaml") -> Config:
    """
    Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to configuration YAML file

    Returns:
        Validated Config object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If configuration is invalid
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_file, 'r') as f:
        config_dict = yaml.safe_load(f) or {}

    # A single credential switches the research provider from simulated to live
    env_api_key = os.getenv('CAESAR_API_KEY')
    if env_api_key:
        config_dict.setdefault('caesar', {})['api_key'] = env_api_key

    env_base_url = os.getenv('CAESAR_API_URL')
    if env_base_url:
        config_dict.setdefault('caesar', {})['base_url'] = env_base_url

    env_port = os.getenv('PORT')
    if env_port:
        try:
            config_dict.setdefault('server', {})['port'] = int(env_port)
        except (ValueError, TypeError):
            # Invalid port from env, will use config value
            pass

    return Config(**config_dict)
