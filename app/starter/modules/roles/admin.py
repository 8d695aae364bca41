from __future__ import annotations

from flask import Blueprint, abort, flash, redirect, render_template, request, url_for

from app.starter.grid import Grid
from app.starter.grid_helpers import LinkAction, add_action_link, add_date_property, add_property, apply_attributes
from app.starter.mapping import bind
from app.starter.modules.roles.service import RoleService, RoleValidator
from app.starter.rbac import require_permission
from app.starter.resources import message
from app.starter.unit_of_work import request_unit_of_work
from app.starter.views import RoleView

bp = Blueprint("roles", __name__)


def role_service() -> RoleService:
    return RoleService(request_unit_of_work())


def _form(template: str, view: RoleView, status: int = 200):
    return render_template(template, view=view, permissions=role_service().permissions()), status


@bp.get("/")
@require_permission("administration.roles.index")
def index():
    grid = Grid(role_service().get_views(), RoleView)
    add_action_link(grid.columns, LinkAction.DETAILS)
    add_action_link(grid.columns, LinkAction.EDIT)
    add_action_link(grid.columns, LinkAction.DELETE)
    add_property(grid.columns, "title")
    add_date_property(grid.columns, "created_at")
    apply_attributes(grid.options, RoleView)
    grid.process(request.args)
    return render_template("administration/roles/index.html", grid=grid)


@bp.get("/create")
@require_permission("administration.roles.create")
def create():
    return _form("administration/roles/create.html", RoleView())


@bp.post("/create")
@require_permission("administration.roles.create")
def create_post():
    view = bind(RoleView, request.form, id=0)
    validator = RoleValidator(request_unit_of_work())
    if not validator.can_create(view):
        for e in validator.errors:
            flash(e, "danger")
        return _form("administration/roles/create.html", view)

    role_service().create(view)
    flash(message("role_created"), "success")
    return redirect(url_for(".index"))


@bp.get("/details/<int:id>")
@require_permission("administration.roles.details")
def details(id: int):
    view = role_service().get_view(id)
    if view is None:
        abort(404)
    return _form("administration/roles/details.html", view)


@bp.get("/edit/<int:id>")
@require_permission("administration.roles.edit")
def edit(id: int):
    view = role_service().get_view(id)
    if view is None:
        abort(404)
    return _form("administration/roles/edit.html", view)


@bp.post("/edit/<int:id>")
@require_permission("administration.roles.edit")
def edit_post(id: int):
    if role_service().get_view(id) is None:
        abort(404)
    view = bind(RoleView, request.form, id=id)
    validator = RoleValidator(request_unit_of_work())
    if not validator.can_edit(view):
        for e in validator.errors:
            flash(e, "danger")
        return _form("administration/roles/edit.html", view)

    role_service().edit(view)
    flash(message("role_updated"), "success")
    return redirect(url_for(".index"))


@bp.get("/delete/<int:id>")
@require_permission("administration.roles.delete")
def delete(id: int):
    view = role_service().get_view(id)
    if view is None:
        abort(404)
    return _form("administration/roles/delete.html", view)


@bp.post("/delete/<int:id>")
@require_permission("administration.roles.delete")
def delete_post(id: int):
    role_service().delete(id)
    flash(message("role_deleted"), "success")
    return redirect(url_for(".index"))
