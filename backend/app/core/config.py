from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
import os

from app.models.costs import RateModel


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # API Settings
    app_name: str = "PodLedger API"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000
    request_timeout_seconds: float = 60.0

    # Kubernetes Settings
    kubeconfig_path: str = os.path.expanduser("~/.kube/config")
    default_context: Optional[str] = None

    # Prometheus Settings
    prometheus_url: str = "http://localhost:9090"
    prometheus_timeout: int = 30
    prometheus_username: Optional[str] = None
    prometheus_password: Optional[str] = None
    prometheus_bearer_token: Optional[str] = None

    # Billing rates
    cpu_cost_per_hour: float = 0.048
    memory_cost_per_gb: float = 0.0067
    storage_cost_per_gb: float = 0.00014

    # CORS Settings
    allowed_origins: list = ["*"]
    allowed_methods: list = ["*"]
    allowed_headers: list = ["*"]

    def rate_model(self) -> RateModel:
        """Freeze the configured billing rates"""
        return RateModel(
            cpu_cost_per_core_hour=self.cpu_cost_per_hour,
            memory_cost_per_gb=self.memory_cost_per_gb,
            storage_cost_per_gb=self.storage_cost_per_gb,
        )


settings = Settings()
