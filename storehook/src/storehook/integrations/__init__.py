"""External API integrations."""

from .base import BaseAPIClient
from .platform import PlatformClient

__all__ = ["BaseAPIClient", "PlatformClient"]
