"""Flask API for the pantry inventory.

- Item counts live in the Firestore ``inventory`` collection, one document
  per item keyed by name. Without Firebase credentials the service falls back
  to a local JSON file with rotating backups.
- Every mutating route performs the store round trips and then re-lists the
  whole collection; responses always carry the freshly listed items.
- The "Add New Item" dialog state is kept server-side next to the inventory
  mirror so any thin client can drive it through the ``/dialog`` routes.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_talisman import Talisman
from pydantic import ValidationError
from werkzeug.exceptions import BadRequest
from werkzeug.middleware.proxy_fix import ProxyFix

from commonlib.config import load_pantry_config
from commonlib.storage import InvalidKey, MalformedDocument, StoreUnavailable
from pantry.controller import InventoryController
from pantry.models import DraftModel, InventoryItem, SearchModel, SubmitModel
from pantry.services.inventory_store import open_inventory_store

BASE_DIR = Path(__file__).resolve().parent

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
CONFIG = load_pantry_config(BASE_DIR)
logging.basicConfig(
    level=CONFIG.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# ---------------------------------------------------------------------------
# Flask app
# ---------------------------------------------------------------------------
app = Flask(__name__)

CORS(app, resources={r"/*": {"origins": list(CONFIG.allowed_origins)}})

# Security headers
Talisman(app, content_security_policy=None, force_https=CONFIG.force_tls)

if CONFIG.tls_cert_file and not Path(CONFIG.tls_cert_file).exists():
    print(f"WARNING: TLS_CERT_FILE not found at {CONFIG.tls_cert_file}")
if CONFIG.tls_key_file and not Path(CONFIG.tls_key_file).exists():
    print(f"WARNING: TLS_KEY_FILE not found at {CONFIG.tls_key_file}")

if CONFIG.trust_proxy_headers:
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)  # type: ignore[assignment]

# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------
CONTROLLER: Optional[InventoryController] = None


def get_controller() -> InventoryController:
    """Return the process-wide controller, loading the inventory on first use."""

    global CONTROLLER
    if CONTROLLER is None:
        controller = InventoryController(open_inventory_store(CONFIG))
        controller.load()
        CONTROLLER = controller
    return CONTROLLER


def _dump(items: list[InventoryItem]) -> list[dict]:
    return [item.model_dump() for item in items]


def _payload(model):
    # An empty body means "no fields"; anything else must parse as JSON.
    data = request.get_json(force=True) if request.get_data() else {}
    return model.model_validate(data)


def _inventory_response(controller: InventoryController):
    visible = controller.filtered_view()
    return jsonify(
        {
            "items": _dump(visible),
            "query": controller.search_query,
            "total": len(controller.mirror),
        }
    )


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------
@app.errorhandler(BadRequest)
def handle_bad_request(exc: BadRequest):
    return jsonify({"error": "Bad request", "detail": exc.description}), 400


@app.errorhandler(InvalidKey)
def handle_invalid_key(exc: InvalidKey):
    return jsonify({"error": "Invalid item name", "detail": exc.reason}), 400


@app.errorhandler(StoreUnavailable)
def handle_store_unavailable(exc: StoreUnavailable):
    app.logger.warning("Inventory action failed, state unchanged: %s", exc)
    return jsonify({"error": "Inventory store unavailable", "detail": str(exc)}), 503


@app.errorhandler(MalformedDocument)
def handle_malformed_document(exc: MalformedDocument):
    app.logger.error("Stored item %r is malformed: %s", exc.key, exc.reason)
    return jsonify({"error": "Stored item is malformed", "detail": str(exc)}), 502


# ---------------------------------------------------------------------------
# Routes — Inventory
# ---------------------------------------------------------------------------
@app.route("/inventory", methods=["GET"])
def list_inventory():
    return _inventory_response(get_controller())


@app.route("/inventory/refresh", methods=["POST"])
def refresh_inventory():
    controller = get_controller()
    return jsonify({"items": _dump(controller.refresh())})


@app.route("/inventory/search", methods=["POST"])
def search_inventory():
    try:
        search = _payload(SearchModel)
    except ValidationError as err:
        return jsonify({"error": err.errors()}), 400
    controller = get_controller()
    controller.search(search.query)
    return _inventory_response(controller)


@app.route("/inventory/items/<path:name>/add", methods=["POST"])
def add_inventory_item(name: str):
    controller = get_controller()
    item = controller.add(name)
    return jsonify(
        {
            "item": item.model_dump() if item else None,
            "items": _dump(controller.mirror),
        }
    )


@app.route("/inventory/items/<path:name>/remove", methods=["POST"])
def remove_inventory_item(name: str):
    controller = get_controller()
    remaining = controller.remove(name)
    return jsonify({"quantity": remaining, "items": _dump(controller.mirror)})


# ---------------------------------------------------------------------------
# Routes — Add item dialog
# ---------------------------------------------------------------------------
@app.route("/dialog", methods=["GET"])
def dialog_state():
    return jsonify(get_controller().dialog.as_dict())


@app.route("/dialog/open", methods=["POST"])
def dialog_open():
    controller = get_controller()
    controller.open_add_dialog()
    return jsonify(controller.dialog.as_dict())


@app.route("/dialog/close", methods=["POST"])
def dialog_close():
    controller = get_controller()
    controller.close_add_dialog()
    return jsonify(controller.dialog.as_dict())


@app.route("/dialog/draft", methods=["PUT"])
def dialog_draft():
    try:
        draft = _payload(DraftModel)
    except ValidationError as err:
        return jsonify({"error": err.errors()}), 400
    controller = get_controller()
    controller.set_draft_name(draft.name)
    return jsonify(controller.dialog.as_dict())


@app.route("/dialog/submit", methods=["POST"])
def dialog_submit():
    try:
        submit = _payload(SubmitModel)
    except ValidationError as err:
        return jsonify({"error": err.errors()}), 400
    controller = get_controller()
    item = controller.submit_add(submit.name)
    body = controller.dialog.as_dict()
    body.update(
        {
            "item": item.model_dump() if item else None,
            "items": _dump(controller.mirror),
        }
    )
    return jsonify(body)


@app.route("/state", methods=["GET"])
def state():
    return jsonify(get_controller().snapshot())


# ---------------------------------------------------------------------------
# Security headers
# ---------------------------------------------------------------------------
@app.after_request
def secure_headers(resp):
    resp.headers["X-Content-Type-Options"] = "nosniff"
    resp.headers["X-Frame-Options"] = "DENY"
    return resp


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app.run(host=CONFIG.api_host, port=CONFIG.api_port, ssl_context=CONFIG.ssl_context)
