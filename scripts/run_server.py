"""Script to launch the webhook bridge."""

from __future__ import annotations

import argparse
import logging
import os
import sys

import uvicorn

# Ensure src/ is on sys.path (so imports work when run directly)
SRC_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from webhook_bridge.config import BridgeSettings, load_config  # noqa: E402
from webhook_bridge.server import create_app  # noqa: E402


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s - %(message)s")

    parser = argparse.ArgumentParser(description="Run the webhook bridge.")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a YAML config file (default: $WEBHOOK_BRIDGE_CONFIG or config/default.yaml)",
    )
    parser.add_argument("--host", type=str, default=None, help="Host to bind (default: from config, 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port to bind (default: $PORT or 3000)")
    args = parser.parse_args()

    settings = BridgeSettings.from_config(load_config(args.config))
    app = create_app(settings=settings)

    host = args.host or settings.host
    port = args.port or settings.port
    logging.getLogger("webhook_bridge").info("Webhook listening on http://%s:%d", host, port)

    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
