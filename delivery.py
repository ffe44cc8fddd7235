"""
Shippo delivery handling: a DELIVERED kit-return shipment tags the Shopify
order, updates tracking on the kit fulfillment (which sends Shopify's native
customer email) and records a Delivered event on the fulfillment timeline.
"""
import logging
from datetime import datetime, timezone
from enum import Enum

from metadata import parse_metadata
from resolvers import resolve_identifiers

logger = logging.getLogger(__name__)

TRACK_UPDATED = "track_updated"
DELIVERED = "DELIVERED"

KIT_RETURN_TAG = "kit_return_received"
# The shipping-update email template keys off this carrier name
KIT_RETURN_CARRIER = "Kit Return"
PLACEHOLDER_TRACKING_NUMBER = "KIT-RETURN"
DELIVERED_MESSAGE = "Impression kit returned"

TAGS_ADD_MUTATION = """
mutation($id: ID!, $tags: [String!]!) {
  tagsAdd(id: $id, tags: $tags) {
    userErrors { field message }
  }
}"""

TRACKING_UPDATE_MUTATION = """
mutation($fulfillmentId: ID!, $trackingInfoInput: FulfillmentTrackingInput!, $notifyCustomer: Boolean) {
  fulfillmentTrackingInfoUpdateV2(
    fulfillmentId: $fulfillmentId,
    trackingInfoInput: $trackingInfoInput,
    notifyCustomer: $notifyCustomer
  ) {
    fulfillment { id }
    userErrors { field message }
  }
}"""

FULFILLMENT_EVENT_MUTATION = """
mutation($input: FulfillmentEventInput!) {
  fulfillmentEventCreate(fulfillmentEvent: $input) {
    fulfillmentEvent { id status }
    userErrors { field message }
  }
}"""


class Outcome(str, Enum):
    IGNORED = "ignored"
    SKIPPED = "skipped"
    PROCESSED = "processed"


def utc_now_iso():
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_dict(value):
    return value if isinstance(value, dict) else {}


def _log_user_errors(operation, payload):
    user_errors = (payload or {}).get('userErrors') or []
    if user_errors:
        logger.warning("⚠️ %s userErrors: %s", operation, user_errors)
    return user_errors


def add_order_tag(client, order_gid, tag=KIT_RETURN_TAG):
    """Add a tag to the order so the email template can key off order.tags"""
    data = client.execute(TAGS_ADD_MUTATION, {"id": order_gid, "tags": [tag]})
    if not _log_user_errors("tagsAdd", data.get('tagsAdd')):
        logger.info("🏷️ Tag added to order: %s %s", order_gid, tag)


def update_tracking(client, fulfillment_id, tracking_number=None, tracking_url=None):
    """
    Update tracking on the kit fulfillment with notifyCustomer, which is what
    sends the native Shopify shipping-update email. The carrier name is fixed
    so the Liquid template can tell kit returns apart.
    """
    tracking_info = {
        "number": tracking_number or PLACEHOLDER_TRACKING_NUMBER,
        "company": KIT_RETURN_CARRIER,
    }
    if tracking_url:
        tracking_info["url"] = tracking_url

    data = client.execute(TRACKING_UPDATE_MUTATION, {
        "fulfillmentId": fulfillment_id,
        "trackingInfoInput": tracking_info,
        "notifyCustomer": True,
    })
    if not _log_user_errors("fulfillmentTrackingInfoUpdateV2", data.get('fulfillmentTrackingInfoUpdateV2')):
        logger.info("📧 Native Shopify notification sent for fulfillment: %s", fulfillment_id)


def record_delivered_event(client, fulfillment_id, happened_at=None):
    data = client.execute(FULFILLMENT_EVENT_MUTATION, {
        "input": {
            "fulfillmentId": fulfillment_id,
            "status": DELIVERED,
            "happenedAt": happened_at or utc_now_iso(),
            "message": DELIVERED_MESSAGE,
        }
    })
    if not _log_user_errors("fulfillmentEventCreate", data.get('fulfillmentEventCreate')):
        logger.info("🕒 Fulfillment Delivered event recorded.")


def handle_delivery_event(event, config, client):
    """
    Process one Shippo webhook payload.

    Returns IGNORED for anything but a DELIVERED track_updated event and
    SKIPPED when the order/fulfillment cannot be resolved; neither touches
    Shopify mutations. Shopify failures propagate as ShopifyAPIError and the
    mutations already applied stay applied.
    """
    event = _as_dict(event)
    data = _as_dict(event.get('data'))
    tracking_status = _as_dict(data.get('tracking_status'))
    status = tracking_status.get('status')
    tracking_number = data.get('tracking_number')

    if event.get('event') != TRACK_UPDATED or status != DELIVERED:
        logger.info("↪︎ Ignored webhook: %s", status or "no status")
        return Outcome.IGNORED

    logger.info("✅ DELIVERED detected for: %s", tracking_number)

    metadata = parse_metadata(data.get('metadata'))
    identifiers = resolve_identifiers(metadata, config, client)
    if not identifiers.complete:
        logger.warning(
            "❌ Could not resolve order/fulfillment for %s (order: %s, fulfillment: %s)",
            tracking_number, identifiers.order_gid, identifiers.fulfillment_id,
        )
        return Outcome.SKIPPED

    add_order_tag(client, identifiers.order_gid)
    update_tracking(client, identifiers.fulfillment_id, tracking_number, data.get('tracking_url'))
    record_delivered_event(client, identifiers.fulfillment_id, tracking_status.get('status_date'))

    return Outcome.PROCESSED
