"""
CLI context for Kontent Restore.

This module provides the context object that is passed to all CLI commands,
containing the configuration and the Management API client.
"""

from dataclasses import dataclass, field
from pathlib import Path

from kontent_restore.client.exceptions import ConfigurationError
from kontent_restore.client.management_client import ManagementClient
from kontent_restore.config import ImportConfig, load_config_from_yaml
from kontent_restore.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RestoreContext:
    """
    Context object for CLI commands.

    Attributes:
        config_path: Path to configuration file (environment variables are
            used when omitted)
        log_level: Console logging level
        log_file: Optional log file path
    """

    config_path: Path | None = None
    log_level: str = "WARNING"
    log_file: Path | None = None

    # Lazy-loaded attributes
    _config: ImportConfig | None = field(default=None, init=False, repr=False)
    _client: ManagementClient | None = field(default=None, init=False, repr=False)

    @property
    def config(self) -> ImportConfig:
        """Get or load import configuration."""
        if self._config is None:
            try:
                if self.config_path is not None:
                    logger.debug("loading_configuration", config_path=str(self.config_path))
                    self._config = load_config_from_yaml(self.config_path)
                else:
                    logger.debug("loading_configuration_from_environment")
                    self._config = ImportConfig()
            except (OSError, ValueError) as e:
                # pydantic.ValidationError is a ValueError
                raise ConfigurationError(str(e)) from e

        return self._config

    def override(self, **values: object) -> None:
        """Apply command-line overrides to the loaded configuration."""
        updates = {key: value for key, value in values.items() if value is not None}
        if updates:
            self._config = self.config.model_copy(update=updates)

    @property
    def client(self) -> ManagementClient:
        """Get or create the Management API client."""
        if self._client is None:
            config = self.config
            self._client = ManagementClient(
                config=config.management,
                retry_config=config.retry,
                log_payloads=config.logging.log_payloads,
                max_payload_size=config.logging.max_payload_size,
            )

        return self._client

    async def aclose(self) -> None:
        """Close the client if it was created."""
        if self._client is not None:
            await self._client.close()
            self._client = None
