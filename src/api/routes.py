import logging

from flask import Blueprint, current_app, jsonify, request

from src.kernel.supply_chain import (
    STAGES,
    ProductNotFound,
    SupplyChainError,
)

log = logging.getLogger(__name__)

bp = Blueprint("api", __name__, url_prefix="/")


def _state():
    return current_app.extensions["chaintrace"]


def _run(coro):
    return _state().runner.run(coro)


def _json_body():
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else {}


def _parse_bool(value, default=True):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


@bp.errorhandler(ProductNotFound)
def product_not_found(e):
    return jsonify({"ok": False, "error": str(e)}), 404


@bp.errorhandler(SupplyChainError)
def supply_chain_error(e):
    log.info("rejected request %s: %s", request.path, e)
    return jsonify({"ok": False, "error": str(e)}), 400


# ---------- health / version ----------
@bp.route("/health")
def health():
    return jsonify({"ok": True})

@bp.route("/version")
def version():
    return jsonify({"name": "ChainTrace", "stages": list(STAGES), "api": 1})

# ---------- Chain ----------
@bp.route("/chain", methods=["GET"])
def chain_info():
    ledger = _state().ledger
    info = ledger.info()
    info["valid"] = _run(ledger.is_chain_valid())
    return jsonify(info)

@bp.route("/chain/blocks", methods=["GET"])
def chain_blocks():
    blocks = [
        dict(block.to_dict(), index=i)
        for i, block in enumerate(_state().ledger.chain)
    ]
    return jsonify({"blocks": blocks})

@bp.route("/chain/verify", methods=["GET"])
def chain_verify():
    valid = _run(_state().ledger.is_chain_valid())
    if not valid:
        log.warning("ledger integrity check failed")
    return jsonify({"valid": valid})

# ---------- Products ----------
@bp.route("/products", methods=["GET"])
def list_products():
    supply = _state().supply_chain
    items = supply.active_products() if _parse_bool(request.args.get("active"), False) else supply.products()
    return jsonify({"products": [p.to_dict() for p in items]})

@bp.route("/products", methods=["POST"])
def create_product():
    data = _json_body()
    product = _run(_state().supply_chain.create_product(
        data.get("name", ""),
        data.get("manufacturer", ""),
        data.get("type", ""),
    ))
    return jsonify({"ok": True, "product": product.to_dict()}), 201

@bp.route("/products/<product_id>", methods=["GET"])
def product_history(product_id):
    product = _state().supply_chain.get(product_id)
    return jsonify({"product": product.to_dict()})

@bp.route("/products/<product_id>/process", methods=["POST"])
def process_product(product_id):
    data = _json_body()
    product = _run(_state().supply_chain.process_product(
        product_id,
        data.get("stage", ""),
        data.get("entity", ""),
        _parse_bool(data.get("successful")),
    ))
    return jsonify({"ok": True, "product": product.to_dict()})
