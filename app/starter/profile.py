from __future__ import annotations

from flask import Blueprint, flash, g, redirect, render_template, request, url_for

from app.starter.auth import account_service, account_validator
from app.starter.mapping import bind
from app.starter.rbac import login_required
from app.starter.resources import message
from app.starter.views import ProfileDeleteView, ProfileEditView

bp = Blueprint("profile", __name__)


@bp.get("/edit")
@login_required
def edit():
    account = g.current_account
    view = ProfileEditView(id=account.id, created_at=account.created_at, username=account.username, email=account.email)
    return render_template("profile/edit.html", view=view)


@bp.post("/edit")
@login_required
def edit_post():
    view = bind(ProfileEditView, request.form, id=g.current_account.id)
    validator = account_validator()
    if not validator.can_edit_profile(view):
        for e in validator.errors:
            flash(e, "danger")
        return render_template("profile/edit.html", view=view), 200

    account_service().edit_profile(view)
    flash(message("profile_updated"), "success")
    return redirect(url_for("profile.edit"))


@bp.get("/delete")
@login_required
def delete():
    return render_template("profile/delete.html", view=ProfileDeleteView())


@bp.post("/delete")
@login_required
def delete_post():
    view = bind(ProfileDeleteView, request.form)
    validator = account_validator()
    if not validator.can_delete_profile(view):
        for e in validator.errors:
            flash(e, "danger")
        return render_template("profile/delete.html", view=ProfileDeleteView()), 200

    service = account_service()
    service.delete(g.current_account.id)
    service.logout()
    flash(message("profile_deleted"), "success")
    return redirect(url_for("auth.login"))
