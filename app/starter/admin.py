from __future__ import annotations

import json

from flask import Blueprint, abort, redirect, render_template, request, url_for

from app.starter.grid import Grid
from app.starter.grid_helpers import LinkAction, add_action_link, add_date_property, add_property, apply_attributes
from app.starter.models import AuditLog
from app.starter.modules.accounts.admin import bp as accounts_bp
from app.starter.modules.roles.admin import bp as roles_bp
from app.starter.rbac import login_required, require_permission
from app.starter.unit_of_work import request_unit_of_work
from app.starter.views import AuditLogView

bp = Blueprint("administration", __name__)
logs_bp = Blueprint("logs", __name__)

# Most recent first; older entries stay in the table but not on screen.
LOG_LIMIT = 1000


@bp.get("/")
@login_required
def index():
    return redirect(url_for("administration.accounts.index"))


@logs_bp.get("/", endpoint="index")
@require_permission("administration.logs.index")
def logs_index():
    uow = request_unit_of_work()
    q = uow.select(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(LOG_LIMIT)
    grid = Grid([uow.to(AuditLogView, log) for log in q.all()], AuditLogView)
    add_action_link(grid.columns, LinkAction.DETAILS)
    add_property(grid.columns, "account_id")
    add_property(grid.columns, "action")
    add_property(grid.columns, "entity_name")
    add_property(grid.columns, "entity_id")
    add_date_property(grid.columns, "created_at")
    apply_attributes(grid.options, AuditLogView)
    grid.process(request.args)
    return render_template("administration/logs/index.html", grid=grid)


@logs_bp.get("/details/<int:id>")
@require_permission("administration.logs.details")
def details(id: int):
    view = request_unit_of_work().get_as(AuditLog, AuditLogView, id)
    if view is None:
        abort(404)
    try:
        changes = json.loads(view.changes) if view.changes else {}
    except ValueError:
        changes = {"raw": view.changes}
    return render_template("administration/logs/details.html", view=view, changes=changes)


bp.register_blueprint(accounts_bp, url_prefix="/accounts")
bp.register_blueprint(roles_bp, url_prefix="/roles")
bp.register_blueprint(logs_bp, url_prefix="/logs")
