import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_SHOP = "texas-orthotics.myshopify.com"
DEFAULT_API_VERSION = "2025-07"
DEFAULT_PORT = 3000


class ConfigError(Exception):
    """Raised when the process environment cannot produce a usable Config"""


def _optional(value):
    value = (value or "").strip()
    return value or None


@dataclass(frozen=True)
class Config:
    shopify_token: str
    shop: str = DEFAULT_SHOP
    api_version: str = DEFAULT_API_VERSION
    fallback_order_gid: str | None = None
    fallback_fulfillment_id: str | None = None
    port: int = DEFAULT_PORT
    log_level: str = "INFO"

    @property
    def graphql_url(self):
        return f"https://{self.shop}/admin/api/{self.api_version}/graphql.json"

    @classmethod
    def from_env(cls, environ=None):
        """
        Build the configuration from environment variables (and .env)
        Raises ConfigError if SHOPIFY_TOKEN is missing or PORT is not a number
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        token = _optional(environ.get('SHOPIFY_TOKEN'))
        if not token:
            raise ConfigError("Missing SHOPIFY_TOKEN env var")

        port = environ.get('PORT') or DEFAULT_PORT
        try:
            port = int(port)
        except (TypeError, ValueError):
            raise ConfigError(f"PORT must be an integer, got {port!r}") from None

        return cls(
            shopify_token=token,
            shop=_optional(environ.get('SHOPIFY_SHOP')) or DEFAULT_SHOP,
            api_version=_optional(environ.get('SHOPIFY_API_VERSION')) or DEFAULT_API_VERSION,
            fallback_order_gid=_optional(environ.get('FALLBACK_ORDER_GID')),
            fallback_fulfillment_id=_optional(environ.get('FALLBACK_FULFILLMENT_ID')),
            port=port,
            log_level=(_optional(environ.get('LOG_LEVEL')) or "INFO").upper(),
        )
