"""Configuration validation"""

from typing import List
from ..models.config import AppConfig

# Wildcard bind addresses are not valid gateway targets
_WILDCARD_HOSTS = {"0.0.0.0", "::", ""}


class ConfigValidator:
    """Validate application configuration for consistency and completeness"""

    def __init__(self, config: AppConfig):
        """
        Initialize validator with configuration

        Args:
            config: Application configuration to validate
        """
        self.config = config
        self.errors: List[str] = []

    def validate_gateway_host(self) -> None:
        """Validate that the gateway host is a concrete address"""
        if self.config.gateway.host.strip() in _WILDCARD_HOSTS:
            self.errors.append(
                f"Gateway host '{self.config.gateway.host}' is not a routable address"
            )

    def validate_self_loop(self) -> None:
        """Validate that the proxy is not configured to call itself"""
        server = self.config.server
        gateway = self.config.gateway
        local_hosts = {"127.0.0.1", "localhost", server.host}
        if gateway.port == server.port and gateway.host in local_hosts:
            self.errors.append(
                f"Gateway address {gateway.address} points back at the proxy listener"
            )

    def validate_body_limit(self) -> None:
        """Validate that the body limit can hold a minimal request"""
        if self.config.server.max_body_bytes < 64:
            self.errors.append(
                f"max_body_bytes {self.config.server.max_body_bytes} is too small for any chat request"
            )

    def validate_all(self) -> List[str]:
        """
        Run all validation checks

        Returns:
            List of validation error messages (empty if valid)
        """
        self.errors = []

        self.validate_gateway_host()
        self.validate_self_loop()
        self.validate_body_limit()

        return self.errors

    def is_valid(self) -> bool:
        """
        Check if configuration is valid

        Returns:
            True if valid, False otherwise
        """
        errors = self.validate_all()
        return len(errors) == 0


def validate_config(config: AppConfig) -> None:
    """
    Validate configuration and raise exception if invalid

    Args:
        config: Configuration to validate

    Raises:
        ValueError: If configuration is invalid
    """
    validator = ConfigValidator(config)
    errors = validator.validate_all()

    if errors:
        error_message = "Configuration validation failed:\n" + "\n".join(f"  - {err}" for err in errors)
        raise ValueError(error_message)
