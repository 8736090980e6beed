"""Runtime configuration, env-driven.

Centralized config using pydantic-settings.  Reads from a ``.env`` file
and ``AGRITRACE_*`` environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from agritrace.models.config import WorkflowConfig


class ProdConfig(BaseSettings):
    """Configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export AGRITRACE_ENVIRONMENT=staging
        export AGRITRACE_LOG_LEVEL=DEBUG
        export AGRITRACE_LEDGER_PATH=/data/ledger.json

    Or via .env file::

        AGRITRACE_REVEAL_DELAY_SECONDS=0
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="AGRITRACE_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Storage paths
    ledger_path: Path = Path(".agritrace/ledger.json")
    evidence_path: Path = Path(".agritrace/evidence")
    content_store_path: Path = Path(".agritrace/content")
    directory_path: Path = Path(".agritrace/verification_directory.json")

    # Workflow
    reveal_delay_seconds: float = 2.0
    update_directory_ref: bool = True

    # Where content ids resolve for humans, e.g. an IPFS gateway
    content_gateway_url: str = ""

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def workflow_config(self) -> WorkflowConfig:
        return WorkflowConfig(
            reveal_delay_seconds=self.reveal_delay_seconds,
            update_directory_ref=self.update_directory_ref,
        )

    def gateway_url(self, content_id: str) -> str:
        """Human-facing URL for *content_id*, or the id itself without a gateway."""
        if not self.content_gateway_url:
            return content_id
        return f"{self.content_gateway_url.rstrip('/')}/{content_id}"


# Module-level singleton - import as `from agritrace.config import config`
config = ProdConfig()
