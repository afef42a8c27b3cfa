"""SSM Parameter Store access for secrets and refund policy documents.

Holds the Stripe secret key and, optionally, a JSON refund-policy document
that overrides the built-in tier tables. Values are cached per process;
Lambda containers pick up rotated values on their next cold start.
"""

import json
import logging
from functools import lru_cache
from typing import Any

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

_CLIENT_ERROR_HINTS = {
    "ParameterNotFound": "SSM parameter not found: {name}",
    "AccessDeniedException": (
        "Access denied to SSM parameter: {name}. Grant ssm:GetParameter (and kms:Decrypt "
        "for SecureString values) to the function role."
    ),
}


class SSMServiceError(Exception):
    """Raised when an SSM parameter cannot be read or parsed."""

    pass


class SSMService:
    """Cached reader for SSM Parameter Store values.

    Usage:
        ssm = get_ssm_service()
        secret = ssm.get_parameter("/mukhymat/dev/stripe/secret_key")
        policy = ssm.get_json_parameter("/mukhymat/dev/refund_policy")
    """

    def __init__(self) -> None:
        self._client = boto3.client("ssm")
        self._values: dict[str, str] = {}

    def get_parameter(self, name: str, *, use_cache: bool = True) -> str:
        """Read a parameter, decrypting SecureString values.

        Args:
            name: Full parameter path
            use_cache: Return the value read earlier in this process, if any

        Raises:
            SSMServiceError: If the parameter cannot be read.
        """
        if use_cache and name in self._values:
            return self._values[name]

        logger.info("Reading SSM parameter %s", name)
        try:
            response = self._client.get_parameter(Name=name, WithDecryption=True)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            template = _CLIENT_ERROR_HINTS.get(code, "Failed to read SSM parameter {name}: {error}")
            raise SSMServiceError(template.format(name=name, error=e)) from e

        self._values[name] = response["Parameter"]["Value"]
        return self._values[name]

    def get_json_parameter(self, name: str, *, use_cache: bool = True) -> dict[str, Any]:
        """Read a parameter holding a JSON object.

        Raises:
            SSMServiceError: If the parameter is missing or not a JSON object.
        """
        raw = self.get_parameter(name, use_cache=use_cache)
        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SSMServiceError(f"SSM parameter {name} is not valid JSON: {e}") from e
        if not isinstance(document, dict):
            raise SSMServiceError(f"SSM parameter {name} must hold a JSON object")
        return document


@lru_cache(maxsize=1)
def get_ssm_service() -> SSMService:
    """Get the shared SSMService instance."""
    return SSMService()
