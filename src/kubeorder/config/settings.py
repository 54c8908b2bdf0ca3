"""
Orchestrator settings using Pydantic.

Provides environment-based configuration loading with KUBEORDER_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Orchestrator settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="KUBEORDER_",
        extra="ignore",
    )

    # Cluster access
    kubectl_path: str = "kubectl"
    kubeconfig: str | None = None
    context: str | None = None
    kubectl_timeout_seconds: int = 300

    # Namespace reconciliation (60 passes x 2s, then a 20s grace period)
    reconcile_attempts: int = 60
    reconcile_interval_seconds: float = 2.0
    reconcile_grace_seconds: float = 20.0

    # Object markers
    app_slug_annotation: str = "kubeorder.io/app-slug"
    creation_weight_annotation: str = "kubeorder.io/creation-weight"
    deletion_weight_annotation: str = "kubeorder.io/deletion-weight"
    backup_exclude_label: str = "velero.io/exclude-from-backup"

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
