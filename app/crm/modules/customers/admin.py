from __future__ import annotations

from flask import Blueprint, abort, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError

from app.crm.db import db_session
from app.crm.modules.customers.service import (
    DuplicateCustomerError,
    create_customer,
    get_customer_by_custno,
    search_customers,
    update_customer,
    validate_customer_payload,
)
from app.crm.notifications.admin import get_profile

bp = Blueprint("customers", __name__)

_FIELDS = ("custno", "custname", "address", "payterm", "context_id")


def _payload() -> dict:
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            abort(400, description="JSON body must be an object")
        return {k: data[k] for k in _FIELDS if k in data}
    return {k: request.form.get(k) for k in _FIELDS if k in request.form}


@bp.get("/customers")
def customers_list():
    s = db_session()
    q = (request.args.get("q") or "").strip()
    try:
        page = int(request.args.get("page") or "1")
    except ValueError:
        page = 1
    result = search_customers(s, q=q, page=page)
    return jsonify(
        {
            "customers": [c.to_dict() for c in result.customers],
            "q": q,
            "page": result.page,
            "total": result.total,
            "has_prev": result.has_prev,
            "has_next": result.has_next,
        }
    )


@bp.post("/customers")
def customers_new_post():
    s = db_session()
    payload = _payload()
    errs = validate_customer_payload(payload)
    if errs:
        return jsonify({"error": "; ".join(f"{e.field}: {e.message}" for e in errs)}), 400

    ctx = None
    context_id = str(payload.get("context_id") or "").strip()
    if context_id:
        ctx = get_profile().get_context(context_id)
        if ctx is None:
            abort(404, description=f"Unknown context {context_id}")

    try:
        c = create_customer(s, payload)
        s.commit()
    except DuplicateCustomerError as e:
        s.rollback()
        return jsonify({"error": str(e)}), 409
    except IntegrityError:
        # Lost a race with a concurrent create of the same custno (unique constraint).
        s.rollback()
        current_app.logger.warning("Duplicate custno on insert: %s", payload.get("custno"))
        return jsonify({"error": "Customer number already exists"}), 409

    current_app.logger.info("Customer created custno=%s", c.custno)
    # Announce only after the row is committed.
    if ctx is not None:
        ctx.announce_created(c.custno, c.custname)
        ctx.notification_log.add_notification(f"New customer added: {c.display_name}")
    return jsonify({"customer": c.to_dict()}), 201


@bp.get("/customers/<custno>")
def customer_detail(custno: str):
    s = db_session()
    c = get_customer_by_custno(s, custno)
    if not c:
        abort(404, description="Customer not found.")
    return jsonify({"customer": c.to_dict()})


@bp.patch("/customers/<custno>")
def customer_update(custno: str):
    s = db_session()
    c = get_customer_by_custno(s, custno)
    if not c:
        abort(404, description="Customer not found.")
    payload = _payload()
    payload.pop("custno", None)
    update_customer(s, c, payload)
    s.commit()
    return jsonify({"customer": c.to_dict()})
