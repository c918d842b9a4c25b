"""Application configuration."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="NodeFlow", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: str = Field(default="development", description="Environment")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")

    # Graph conventions
    start_node_type: str = Field(
        default="workflow-start", description="Node type treated as the workflow start"
    )
    end_node_type: str = Field(
        default="workflow-end", description="Node type treated as the workflow end"
    )
    loop_node_type: str = Field(
        default="loop-processor", description="Node type of the built-in loop template"
    )
    loop_body_handle: str = Field(
        default="loop-body", description="Source handle marking a loop-body edge"
    )

    # Execution
    default_max_iterations: int = Field(
        default=1000, ge=1, description="Loop iteration cap when a loop node sets none"
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() in ("development", "dev")

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() in ("production", "prod")

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment.lower() in ("testing", "test")


@lru_cache()
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return Settings()


# Global settings instance
settings = get_settings()
