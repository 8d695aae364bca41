from __future__ import annotations

from flask import Blueprint, abort, flash, redirect, render_template, request, url_for

from app.starter.auth import account_service, account_validator
from app.starter.grid import Grid
from app.starter.grid_helpers import LinkAction, add_action_link, add_date_property, add_property, apply_attributes
from app.starter.mapping import bind
from app.starter.modules.roles.service import RoleService
from app.starter.rbac import require_permission
from app.starter.resources import message
from app.starter.unit_of_work import request_unit_of_work
from app.starter.views import AccountCreateView, AccountEditView, AccountView

bp = Blueprint("accounts", __name__)


def _roles():
    return RoleService(request_unit_of_work()).get_views()


def accounts_grid(rows: list[AccountView]) -> Grid:
    grid = Grid(rows, AccountView)
    add_action_link(grid.columns, LinkAction.DETAILS)
    add_action_link(grid.columns, LinkAction.EDIT)
    add_property(grid.columns, "username")
    add_property(grid.columns, "email")
    add_property(grid.columns, "is_locked")
    add_property(grid.columns, "role_title")
    add_date_property(grid.columns, "created_at")
    apply_attributes(grid.options, AccountView)
    return grid.process(request.args)


@bp.get("/")
@require_permission("administration.accounts.index")
def index():
    grid = accounts_grid(account_service().get_views())
    return render_template("administration/accounts/index.html", grid=grid)


@bp.get("/create")
@require_permission("administration.accounts.create")
def create():
    return render_template("administration/accounts/create.html", view=AccountCreateView(), roles=_roles())


@bp.post("/create")
@require_permission("administration.accounts.create")
def create_post():
    view = bind(AccountCreateView, request.form, id=0)
    validator = account_validator()
    if not validator.can_create(view):
        for e in validator.errors:
            flash(e, "danger")
        return render_template("administration/accounts/create.html", view=view, roles=_roles()), 200

    account_service().create(view)
    flash(message("account_created"), "success")
    return redirect(url_for(".index"))


@bp.get("/details/<int:id>")
@require_permission("administration.accounts.details")
def details(id: int):
    view = account_service().get(AccountView, id)
    if view is None:
        abort(404)
    return render_template("administration/accounts/details.html", view=view)


@bp.get("/edit/<int:id>")
@require_permission("administration.accounts.edit")
def edit(id: int):
    view = account_service().get(AccountEditView, id)
    if view is None:
        abort(404)
    return render_template("administration/accounts/edit.html", view=view, roles=_roles())


@bp.post("/edit/<int:id>")
@require_permission("administration.accounts.edit")
def edit_post(id: int):
    service = account_service()
    if service.get(AccountEditView, id) is None:
        abort(404)
    view = bind(AccountEditView, request.form, id=id)
    validator = account_validator()
    if not validator.can_edit(view):
        for e in validator.errors:
            flash(e, "danger")
        return render_template("administration/accounts/edit.html", view=view, roles=_roles()), 200

    service.edit(view)
    flash(message("account_updated"), "success")
    return redirect(url_for(".index"))
