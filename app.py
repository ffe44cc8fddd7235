from flask import Flask, request, jsonify
import logging

from config import Config, ConfigError
from delivery import handle_delivery_event
from shopify_client import ShopifyClient

logger = logging.getLogger(__name__)


def create_app(config=None, client=None):
    """Build the Flask app around a validated Config and a Shopify client"""
    config = config or Config.from_env()
    client = client or ShopifyClient.from_config(config)

    app = Flask(__name__)

    @app.route('/shippo/webhook', methods=['POST'])
    def shippo_webhook():
        """Webhook endpoint that Shippo calls on tracking updates"""
        event = request.get_json(silent=True) or {}

        try:
            outcome = handle_delivery_event(event, config, client)
        except Exception:
            logger.exception("❌ Shopify update failed")
            return jsonify({"success": False, "message": "Shopify update failed"}), 500

        return jsonify({"success": True, "message": outcome.value}), 200

    @app.route('/health', methods=['GET'])
    def health_check():
        return jsonify({"status": "healthy", "message": "Kit return webhook server is running"}), 200

    @app.route('/')
    def home():
        return "OK"

    return app


def main():
    try:
        config = Config.from_env()
    except ConfigError as e:
        raise SystemExit(f"❌ {e}")

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("FALLBACK_FULFILLMENT_ID = %s", config.fallback_fulfillment_id)
    logger.info("FALLBACK_ORDER_GID = %s", config.fallback_order_gid)

    app = create_app(config)
    logger.info("🌐 Server running on http://localhost:%s", config.port)
    app.run(host='0.0.0.0', port=config.port, debug=False)


if __name__ == '__main__':
    main()
