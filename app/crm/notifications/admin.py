from __future__ import annotations

from flask import Blueprint, Flask, abort, current_app, jsonify, redirect, request

from app.crm.notifications.context import ExecutionContext, Profile
from app.crm.notifications.toasts import EntityKind
from app.crm.storage import store_from_config

bp = Blueprint("notifications", __name__)


def init_notifications(app: Flask) -> Profile:
    store = store_from_config(app.config, app.extensions.get("sqlalchemy_sessionmaker"))
    profile = Profile(
        store,
        kind=EntityKind(path_template=app.config.get("ENTITY_PATH_TEMPLATE") or "/customers/{id}"),
        notifications_max=int(app.config.get("NOTIFICATIONS_MAX") or 0),
        idle_seconds=int(app.config.get("CONTEXT_IDLE_SECONDS") or 0),
    )
    app.extensions["crm_profile"] = profile
    app.logger.info("Notification relay ready (store=%s)", type(store).__name__)
    return profile


def get_profile() -> Profile:
    return current_app.extensions["crm_profile"]


def get_context_or_404(context_id: str) -> ExecutionContext:
    ctx = get_profile().get_context(context_id)
    if ctx is None:
        abort(404, description=f"Unknown context {context_id}")
    return ctx


@bp.post("/contexts")
def contexts_open():
    ctx = get_profile().open_context()
    return jsonify({"context_id": ctx.id, "toasts": [t.to_dict() for t in ctx.presenter.drain()]}), 201


@bp.delete("/contexts/<context_id>")
def contexts_close(context_id: str):
    if not get_profile().close_context(context_id):
        abort(404, description=f"Unknown context {context_id}")
    return "", 204


@bp.get("/contexts/<context_id>/toasts")
def toasts_list(context_id: str):
    ctx = get_context_or_404(context_id)
    return jsonify({"toasts": [t.to_dict() for t in ctx.presenter.drain()]})


@bp.post("/contexts/<context_id>/toasts/<toast_id>/activate")
def toasts_activate(context_id: str, toast_id: str):
    ctx = get_context_or_404(context_id)
    try:
        path = ctx.presenter.activate(toast_id)
    except KeyError:
        abort(404, description=f"Unknown toast {toast_id}")
    return redirect(path), 302


@bp.delete("/contexts/<context_id>/toasts/<toast_id>")
def toasts_dismiss(context_id: str, toast_id: str):
    ctx = get_context_or_404(context_id)
    ctx.presenter.dismiss(toast_id)
    return "", 204


@bp.get("/contexts/<context_id>/notifications")
def notifications_list(context_id: str):
    ctx = get_context_or_404(context_id)
    return jsonify({"notifications": ctx.notification_log.notifications})


@bp.post("/contexts/<context_id>/notifications")
def notifications_add(context_id: str):
    ctx = get_context_or_404(context_id)
    data = request.get_json(silent=True) or {}
    message = data.get("message") if isinstance(data, dict) else None
    if message is None:
        message = request.form.get("message")
    if not isinstance(message, str) or not message.strip():
        abort(400, description="message is required")
    ctx.notification_log.add_notification(message.strip())
    return jsonify({"notifications": ctx.notification_log.notifications}), 201


@bp.delete("/contexts/<context_id>/notifications")
def notifications_clear(context_id: str):
    ctx = get_context_or_404(context_id)
    ctx.notification_log.clear_notifications()
    return "", 204
