"""HTTP entrypoint exposing search and enrichment (Cloud Run friendly)."""

from __future__ import annotations

import asyncio
import atexit
import logging
import os
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from leadgen.core.config import get_settings
from leadgen.core.db import PlaceStore
from leadgen.core.errors import ConfigurationError, InvalidQueryError, SearchUnavailableError, StoreError
from leadgen.core.search_service import SearchService

logger = logging.getLogger(__name__)


def _parse_max_results(raw: Any) -> Optional[int]:
    if raw is None:
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise InvalidQueryError("max_results must be numeric") from None
    if value <= 0:
        raise InvalidQueryError("max_results must be positive")
    return value


def create_app(service: SearchService) -> Flask:
    app = Flask(__name__)

    @app.get("/")
    def root() -> Any:
        """Simple root to avoid 404 on GET /"""
        return "ok", 200

    @app.get("/healthz")
    def healthcheck() -> Any:
        """Lightweight health endpoint; reads settings only, never the database."""
        settings = get_settings()
        return (
            jsonify(
                {
                    "status": "ok",
                    "worker_port_config": settings.worker_port,
                    "enrichment_mode": service.mode.value,
                    "revision": os.getenv("K_REVISION", "unknown"),
                }
            ),
            200,
        )

    @app.post("/search")
    def search() -> Any:
        """
        Search places, cache first.
        Required JSON fields: query
        Optional: force_fresh (bool), max_results (int)
        """
        payload: Dict[str, Any] = request.get_json(silent=True) or {}
        try:
            max_results = _parse_max_results(payload.get("max_results"))
            result = asyncio.run(
                service.search(
                    str(payload.get("query") or ""),
                    force_fresh=bool(payload.get("force_fresh", False)),
                    max_results=max_results,
                )
            )
        except InvalidQueryError as exc:
            return jsonify({"error": str(exc)}), 400
        except ConfigurationError as exc:
            logger.error("Search is misconfigured: %s", exc)
            return jsonify({"error": "search is not configured"}), 500
        except SearchUnavailableError as exc:
            return jsonify({"error": str(exc)}), 503

        return jsonify({"data": result.to_dict()}), 200

    @app.post("/enrich")
    def enrich() -> Any:
        """Enrich stored places. Required JSON field: place_ids (list of str)."""
        payload: Dict[str, Any] = request.get_json(silent=True) or {}
        place_ids = payload.get("place_ids")
        if not isinstance(place_ids, list):
            return jsonify({"error": "place_ids must be a list"}), 400

        try:
            outcome = asyncio.run(service.enrich(place_ids))
        except InvalidQueryError as exc:
            return jsonify({"error": str(exc)}), 400
        except StoreError as exc:
            logger.exception("Enrichment failed: %s", exc)
            return jsonify({"error": "enrichment failed"}), 500

        return jsonify({"data": outcome}), 200

    return app


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    settings = get_settings()
    store = PlaceStore.from_settings(settings).open()
    atexit.register(store.close)

    app = create_app(SearchService(store, settings))

    port = int(os.getenv("PORT") or settings.worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
