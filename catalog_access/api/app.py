"""
Flask application factory and server entry-point.
"""

import logging
import os
import sys
import traceback
from typing import Optional

from flask import Flask
from flask_cors import CORS

from catalog_access.config import API_HOST, API_PORT
from catalog_access.engine import CatalogEngine, build_engine
from catalog_access.api.routes import register_routes


def create_app(engine: Optional[CatalogEngine] = None):
    """Build and return a fully configured Flask application."""
    app = Flask(__name__)
    CORS(app)

    # ── Initialise shared resources ──────────────────────────────────
    if engine is None:
        try:
            print("[init] Loading catalog snapshot...")
            engine = build_engine()
            print("[init] ✓ API server ready")
        except Exception as e:
            print(f"[FATAL] Failed to initialize: {e}", file=sys.stderr)
            traceback.print_exc()
            sys.exit(1)

    app.config["CATALOG_ENGINE"] = engine

    # ── Register routes ──────────────────────────────────────────────
    register_routes(app, engine)

    return app


def main():
    """Run the development server."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("=" * 60)
    print("Marketplace Catalog Access – REST API Server")
    print("=" * 60)

    app = create_app()

    debug = os.getenv("FLASK_ENV") == "development"

    print(f"\n[server] Starting Flask API on {API_HOST}:{API_PORT}")
    print(f"[server] Debug mode: {debug}")
    print("\nAPI Endpoints:")
    print(f"  - GET  http://{API_HOST}:{API_PORT}/api/catalog")
    print(f"  - GET  http://{API_HOST}:{API_PORT}/api/products/<id>")
    print(f"  - POST http://{API_HOST}:{API_PORT}/api/access/validate")
    print(f"  - GET  http://{API_HOST}:{API_PORT}/api/compliance/status")
    print(f"  - GET  http://{API_HOST}:{API_PORT}/api/compliance/report")
    print(f"  - GET  http://{API_HOST}:{API_PORT}/health")
    print("\n" + "=" * 60)

    app.run(host=API_HOST, port=API_PORT, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
