"""
Order / fulfillment identifier resolution.

Shippo metadata is inconsistent between label sources, so each identifier is
resolved through an ordered cascade of strategies. A strategy returns a value
or None; the first non-empty value for a target wins and later strategies for
that target are never called. Remote lookups come last so a payload with
explicit metadata never touches Shopify before the mutations.
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

ORDER_NUMBER_PATTERN = re.compile(r"Order\s*#\s*(\d+)", re.IGNORECASE)

ORDER_BY_NAME_QUERY = """
query($query: String!) {
  orders(first: 5, query: $query) {
    edges {
      node {
        id
        name
        fulfillments(first: 25) {
          id
          status
          createdAt
        }
      }
    }
  }
}"""

FULFILLMENT_ORDER_QUERY = """
query($id: ID!) {
  node(id: $id) {
    ... on Fulfillment {
      id
      order { id }
    }
  }
}"""

ORDER_GID = "order_gid"
FULFILLMENT_ID = "fulfillment_id"

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class Identifiers:
    order_gid: str | None = None
    fulfillment_id: str | None = None

    @property
    def complete(self):
        return bool(self.order_gid) and bool(self.fulfillment_id)


@dataclass
class OrderMatch:
    order_gid: str | None
    fulfillment_id: str | None


class ResolutionContext:
    """Inputs shared by every strategy, plus the memoized order-name lookup"""

    _NOT_LOOKED_UP = object()

    def __init__(self, metadata, config, client, identifiers=None):
        self.metadata = metadata
        self.config = config
        self.client = client
        self.identifiers = identifiers or Identifiers()
        self._order_match = self._NOT_LOOKED_UP

    def order_match(self):
        """Look up the order named in the metadata text, at most once per context"""
        if self._order_match is self._NOT_LOOKED_UP:
            self._order_match = lookup_order_by_text(self.client, self.metadata.text())
        return self._order_match


def find_order_number(text):
    """Return the digits of the first `Order #<digits>` in text, if any"""
    if not text:
        return None
    match = ORDER_NUMBER_PATTERN.search(text)
    return match.group(1) if match else None


def _parse_timestamp(value):
    if not value:
        return _EARLIEST
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return _EARLIEST
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def latest_fulfillment(fulfillments):
    """
    Pick the most recently created fulfillment.
    Ties keep the first in response order; missing timestamps sort earliest.
    """
    candidates = [f for f in fulfillments or [] if f and f.get('id')]
    if not candidates:
        return None
    return max(candidates, key=lambda f: _parse_timestamp(f.get('createdAt')))


def lookup_order_by_name(client, order_number):
    """Query Shopify for the order named `#<order_number>`"""
    name = f"#{order_number}"
    logger.info("🔎 Looking up Shopify order %s", name)
    data = client.execute(ORDER_BY_NAME_QUERY, {"query": f"name:{name}"})

    edges = (data.get('orders') or {}).get('edges') or []
    for edge in edges:
        node = (edge or {}).get('node') or {}
        if node.get('name') != name or not node.get('id'):
            continue
        fulfillment = latest_fulfillment(node.get('fulfillments'))
        match = OrderMatch(
            order_gid=node['id'],
            fulfillment_id=fulfillment['id'] if fulfillment else None,
        )
        logger.info("✅ Found order %s: %s (fulfillment: %s)", name, match.order_gid, match.fulfillment_id)
        return match

    logger.warning("⚠️ No Shopify order named %s", name)
    return None


def lookup_order_by_text(client, text):
    order_number = find_order_number(text)
    if not order_number:
        return None
    return lookup_order_by_name(client, order_number)


def lookup_fulfillment_order(client, fulfillment_id):
    """Resolve a fulfillment's parent order GID"""
    data = client.execute(FULFILLMENT_ORDER_QUERY, {"id": fulfillment_id})
    node = data.get('node') or {}
    order_gid = (node.get('order') or {}).get('id')
    if not order_gid:
        logger.warning("⚠️ Could not resolve order GID from fulfillment: %s", fulfillment_id)
    return order_gid


# Strategies


def metadata_field(name):
    def strategy(context):
        return context.metadata.field(name)
    strategy.__name__ = f"metadata[{name}]"
    return strategy


def as_order_gid(inner):
    """Accept bare numeric order ids (REST style) by promoting them to GIDs"""
    def strategy(context):
        value = inner(context)
        if value and value.isdigit():
            return f"gid://shopify/Order/{value}"
        return value
    strategy.__name__ = inner.__name__
    return strategy


def configured_fallback(attribute):
    def strategy(context):
        return getattr(context.config, attribute, None)
    strategy.__name__ = f"config.{attribute}"
    return strategy


def order_from_name_lookup(context):
    match = context.order_match()
    return match.order_gid if match else None


def fulfillment_from_name_lookup(context):
    match = context.order_match()
    return match.fulfillment_id if match else None


def order_from_fulfillment(context):
    fulfillment_id = context.identifiers.fulfillment_id
    if not fulfillment_id:
        return None
    return lookup_fulfillment_order(context.client, fulfillment_id)


CASCADE = (
    (ORDER_GID, metadata_field('shopify_order_gid')),
    (ORDER_GID, as_order_gid(metadata_field('shopify_order_id'))),
    (ORDER_GID, configured_fallback('fallback_order_gid')),
    (FULFILLMENT_ID, metadata_field('kit_fulfillment_id')),
    (FULFILLMENT_ID, configured_fallback('fallback_fulfillment_id')),
    (ORDER_GID, order_from_name_lookup),
    (FULFILLMENT_ID, fulfillment_from_name_lookup),
    (ORDER_GID, order_from_fulfillment),
)


def run_cascade(context, cascade=CASCADE):
    identifiers = context.identifiers
    for target, strategy in cascade:
        if getattr(identifiers, target):
            continue
        value = strategy(context)
        if isinstance(value, str):
            value = value.strip()
        if value:
            logger.debug("%s resolved via %s", target, strategy.__name__)
            setattr(identifiers, target, value)
    return identifiers


def resolve_identifiers(metadata, config, client):
    """Resolve (order_gid, fulfillment_id) for a delivery event's metadata"""
    return run_cascade(ResolutionContext(metadata, config, client))
