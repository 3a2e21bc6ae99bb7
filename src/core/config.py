"""
Warmup service configuration
"""
import os
from typing import List, Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


def _default_result_consumer_count() -> int:
    return 2 * (os.cpu_count() or 1)


class WarmupTargetConfig(BaseModel):
    """Function to keep warm"""

    name: str
    alias: Optional[str] = None
    strategy: Optional[str] = None
    invocation_count: int = 0
    invocation_data: Optional[str] = None


class Settings(BaseSettings):
    """Warmup service settings"""

    # Application
    app_name: str = "Lambda Warmup Service"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8002
    workers: int = 1

    # Security
    api_key: str = "warmup-api-key-change-in-production"

    # Dispatch
    invocation_count: int = 8  # per function, across all iterations
    result_consumer_count: int = Field(default_factory=_default_result_consumer_count)
    iteration_count: int = 2
    enable_split_iterations: bool = False
    randomization_bypass_interval_millis: int = 15 * 60 * 1000
    disable_randomization: bool = False
    warmup_function_alias: Optional[str] = None
    # True logs failures, False raises them
    throw_error_on_failure: bool = False
    dont_wait_between_invocation_rounds: bool = False
    drain_poll_interval_seconds: float = 1.0

    # Adaptive scaling
    function_instance_idle_time_millis: int = 30 * 60 * 1000
    warmup_scale_factor: float = 2.0
    disable_warmup_scale: bool = False

    # Strategies
    warmup_strategy: str = "standard"

    # Targets
    targets: List[WarmupTargetConfig] = []
    default_deadline_millis: int = 60000

    # AWS Lambda
    aws_region: Optional[str] = None
    aws_max_retries: int = 3
    aws_connect_timeout: int = 10
    aws_read_timeout: int = 60
    invoker_max_workers: int = 32

    # Monitoring
    enable_metrics: bool = True

    # PostHog Analytics & Error Tracking
    posthog_api_key: Optional[str] = None
    posthog_host: str = "https://us.i.posthog.com"

    model_config = SettingsConfigDict(
        env_prefix="LAMBDA_WARMUP_",
        env_file=".env",
        case_sensitive=False,
    )

@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
