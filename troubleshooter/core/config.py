"""
Application settings management.

Settings are loaded from environment variables with .env file support.
All configuration is validated using Pydantic.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # ==========================================================================
    # Paths
    # ==========================================================================

    config_dir: Path = Field(
        default=Path("config"),
        description="Directory containing YAML configuration files",
    )
    log_dir: Path = Field(default=Path("logs"), description="Directory for log files")
    log_sessions_to_keep: int = Field(
        default=5, ge=1, le=100, description="Number of per-run log files to retain"
    )

    # ==========================================================================
    # Database
    # ==========================================================================

    database_path: Path = Field(
        default=Path("data/troubleshooter.db"),
        description="Path to SQLite database file",
    )

    # ==========================================================================
    # Graph Snapshot Cache
    # ==========================================================================

    graph_cache_ttl_seconds: int = Field(
        default=600, ge=1, description="Lifetime of a cached category graph"
    )
    graph_cache_max_size: int = Field(
        default=50, ge=1, description="Soft cap on cached category graphs"
    )
    cache_cleanup_interval_seconds: int = Field(
        default=0,
        ge=0,
        description="Period of the background expired-entry sweep (0 disables it)",
    )

    # ==========================================================================
    # Server Configuration
    # ==========================================================================

    host: str = Field(default="127.0.0.1", description="Server host address")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")
    debug: bool = Field(default=False, description="Enable debug mode")


# ============================================================================
# Troubleshooting Configuration (from YAML)
# ============================================================================


class SessionsConfig(BaseModel):
    """Troubleshooting session behaviour."""

    abandon_after_minutes: int = Field(
        default=60,
        ge=1,
        description="Age after which an incomplete session is flagged abandoned",
    )
    reject_abandoned_answers: bool = Field(
        default=False,
        description="Refuse answers on sessions flagged abandoned by the sweep",
    )


class GraphConfig(BaseModel):
    """Conventions used to locate well-known nodes."""

    global_start_semantic_id: str = Field(default="start")
    start_suffix: str = Field(default="_start")

    def start_semantic_id(self, category: Optional[str] = None) -> str:
        """Semantic id of the entry node for a category, or the global one."""
        if category is None:
            return self.global_start_semantic_id
        return f"{category}{self.start_suffix}"


class TroubleshootConfig(BaseModel):
    """
    Domain configuration loaded from troubleshoot_config.yaml.
    """

    sessions: SessionsConfig = Field(default_factory=SessionsConfig)
    graph: GraphConfig = Field(default_factory=GraphConfig)


def load_troubleshoot_config(config_path: Optional[Path] = None) -> TroubleshootConfig:
    """
    Load troubleshooting configuration from YAML file.

    Args:
        config_path: Path to troubleshoot_config.yaml. If None, uses default path.

    Returns:
        TroubleshootConfig with validated settings

    Raises:
        ValueError: If config validation fails
    """
    if config_path is None:
        # Default: settings.config_dir, then config/ relative to project root
        project_root = Path(__file__).resolve().parent.parent.parent
        candidates = [
            settings.config_dir / "troubleshoot_config.yaml",
            project_root / "config" / "troubleshoot_config.yaml",
        ]
        config_path = next((p for p in candidates if p.exists()), None)
        if config_path is None:
            return TroubleshootConfig()

    config_path = Path(config_path).resolve()

    if not config_path.exists():
        return TroubleshootConfig()

    with open(str(config_path)) as f:
        config_data = yaml.safe_load(f)

    if not config_data:
        return TroubleshootConfig()

    return TroubleshootConfig(**config_data)


# Global settings instance
settings = Settings()

# Global troubleshooting config instance
troubleshoot_config = load_troubleshoot_config()
