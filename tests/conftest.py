"""Shared fixtures for the kit return webhook tests."""

import re

import pytest

from config import Config

_OPERATION = re.compile(r"\{\s*(\w+)")


def operation_name(query):
    """Return the root field of a GraphQL document (e.g. ``tagsAdd``)."""
    return _OPERATION.search(query).group(1)


class FakeShopifyClient:
    """Records every call and answers from canned responses keyed by root field.

    A response that is an exception instance is raised instead of returned.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def execute(self, query, variables=None):
        operation = operation_name(query)
        self.calls.append((operation, variables))
        response = self.responses.get(operation, {operation: {"userErrors": []}})
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def operations(self):
        return [operation for operation, _ in self.calls]

    def variables_for(self, operation):
        for name, variables in self.calls:
            if name == operation:
                return variables
        return None


MUTATIONS = ["tagsAdd", "fulfillmentTrackingInfoUpdateV2", "fulfillmentEventCreate"]


@pytest.fixture()
def config():
    return Config(shopify_token="shpat_test", shop="test-shop.myshopify.com")


@pytest.fixture()
def fallback_config():
    return Config(
        shopify_token="shpat_test",
        shop="test-shop.myshopify.com",
        fallback_order_gid="gid://shopify/Order/999",
        fallback_fulfillment_id="gid://shopify/Fulfillment/888",
    )


@pytest.fixture()
def shopify():
    return FakeShopifyClient()


def delivered_event(metadata=None, **data):
    """Build a Shippo track_updated/DELIVERED payload."""
    payload = {
        "tracking_number": "9400111899223344556677",
        "tracking_status": {"status": "DELIVERED", "status_date": "2026-10-15T17:04:11.000Z"},
    }
    if metadata is not None:
        payload["metadata"] = metadata
    payload.update(data)
    return {"event": "track_updated", "data": payload}


def order_lookup_response(name="#1042", order_id="gid://shopify/Order/1042", fulfillments=None):
    return {
        "orders": {
            "edges": [
                {
                    "node": {
                        "id": order_id,
                        "name": name,
                        "fulfillments": fulfillments or [],
                    }
                }
            ]
        }
    }
