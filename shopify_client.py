import logging

import requests

logger = logging.getLogger(__name__)


class ShopifyAPIError(Exception):
    """Shopify answered with a non-2xx status or a top-level `errors` list, or never answered"""

    def __init__(self, message, status_code=None, body=None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ShopifyClient:
    """Minimal GraphQL helper for the Shopify Admin API"""

    def __init__(self, graphql_url, access_token):
        self.graphql_url = graphql_url
        self.shopify_headers = {
            'Content-Type': 'application/json',
            'X-Shopify-Access-Token': access_token
        }

    @classmethod
    def from_config(cls, config):
        return cls(config.graphql_url, config.shopify_token)

    def execute(self, query, variables=None):
        """
        Send one GraphQL request and return its `data` mapping.
        Single attempt: no retries and no client-side timeout.
        """
        payload = {"query": query, "variables": variables or {}}

        try:
            response = requests.post(self.graphql_url, json=payload, headers=self.shopify_headers)
        except requests.RequestException as e:
            logger.error("❌ Shopify API request failed: %s", e)
            raise ShopifyAPIError(f"Shopify API request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            logger.error("❌ Shopify API error: %s - %s", response.status_code, response.text)
            raise ShopifyAPIError(
                f"Shopify API returned a non-JSON body ({response.status_code})",
                status_code=response.status_code,
                body=response.text,
            ) from None

        if not response.ok or (isinstance(body, dict) and body.get('errors')):
            logger.error("❌ Shopify API error: %s - %s", response.status_code, body)
            raise ShopifyAPIError(
                f"Shopify API error ({response.status_code})",
                status_code=response.status_code,
                body=body,
            )

        if not isinstance(body, dict):
            logger.error("❌ Unexpected Shopify API response: %s", body)
            raise ShopifyAPIError("Unexpected Shopify API response", status_code=response.status_code, body=body)

        return body.get('data') or {}
