"""
HTTP lookup route.

    GET /parts/<token>  ->  {"success": true, "data": {...}}
                        or  {"success": false, "error": "..."}

Status codes: 404 part not found, 400 table without an id column,
500 source not configured or upstream/transport failure.
"""

import argparse
import logging

from flask import Flask, jsonify

from .config import load_settings, sheets_client_from
from .errors import (
    LookupConfigurationFailure,
    LookupNotFound,
    PartLookupError,
    SourceNotConfigured,
)
from .lookup import PartLookup, Resolver

logger = logging.getLogger(__name__)


def create_app(lookup: Resolver) -> Flask:
    app = Flask(__name__)

    @app.get("/parts/<path:token>")
    def get_part(token: str):
        try:
            record = lookup.resolve(token)
        except LookupNotFound as exc:
            return jsonify({"success": False, "error": exc.message}), 404
        except SourceNotConfigured as exc:
            return jsonify({"success": False, "error": exc.message}), 500
        except LookupConfigurationFailure as exc:
            return jsonify({"success": False, "error": exc.message}), 400
        except PartLookupError as exc:
            logger.error("Error fetching part data for %r: %s", token, exc)
            return jsonify({"success": False, "error": exc.message}), 500
        return jsonify({"success": True, "data": record.to_json()})

    return app


def main() -> int:
    parser = argparse.ArgumentParser(description="Serve part lookups from a sheet")
    parser.add_argument("--config", default="config.toml", help="Path to config TOML")
    parser.add_argument("--host", help="Bind address (default: config server.host)")
    parser.add_argument("--port", type=int, help="Port (default: config server.port)")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config, env = load_settings(args.config)
    server_cfg = config.get("server", {})
    sheets = sheets_client_from(config, env)
    if not sheets.configured:
        logger.warning("Sheets source not configured; lookups will fail with 500")

    app = create_app(PartLookup(sheets))
    app.run(
        host=args.host or server_cfg.get("host", "127.0.0.1"),
        port=args.port or server_cfg.get("port", 5000),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
