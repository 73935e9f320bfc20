"""API key validation for write endpoints."""

import hmac
from typing import Optional

from ..utils.config import get_config
from ..utils.logger import get_api_logger
from ..utils.exceptions import AuthenticationError, ConfigurationError

API_KEY_HEADER = "X-API-Key"


class APIKeyValidator:
    """Checks the ``X-API-Key`` header against the configured key."""

    def __init__(self):
        config = get_config()
        self.api_key = config.env.api_key
        self.logger = get_api_logger()
        self.validate_enabled = config.api.require_api_key

    def validate(self, header_value: Optional[str]) -> bool:
        """
        Validate the API key sent by a client.

        Args:
            header_value: Value of the X-API-Key header

        Returns:
            True if the key is valid or validation is disabled

        Raises:
            AuthenticationError: If the key is missing or wrong
            ConfigurationError: If validation is enabled without a key
        """
        if not self.validate_enabled:
            return True

        if not self.api_key:
            raise ConfigurationError(
                "API key validation is enabled but no key is configured",
                details={"setting": "JESSICA_API_KEY"}
            )

        if not header_value:
            raise AuthenticationError(
                "Missing API key header",
                details={"header": API_KEY_HEADER}
            )

        # Constant-time comparison
        if not hmac.compare_digest(self.api_key.encode("utf-8"), header_value.encode("utf-8")):
            raise AuthenticationError(
                "Invalid API key",
                details={"received": header_value[:4] + "..."}
            )

        self.logger.debug("API key validated successfully")
        return True
