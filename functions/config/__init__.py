"""Guardian proposal engine configuration.

This package contains:
- settings: Environment variables and configuration
- secrets: Unified secret access (Firebase Secrets Manager)
- errors: Custom exceptions and error codes
"""

from config.settings import settings
from config.errors import ProposalEngineError, ErrorCode
from config.secrets import get_secret, get_openai_api_key

__all__ = [
    "settings",
    "ProposalEngineError",
    "ErrorCode",
    "get_secret",
    "get_openai_api_key",
]
