from __future__ import annotations

import uuid

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, session, url_for

from app.starter.audit import record_event
from app.starter.db import db_session
from app.starter.mail import MailError, mail_client
from app.starter.mapping import bind
from app.starter.models import Account
from app.starter.modules.accounts.service import AccountService, find_by_username, recovery_token_lifetime
from app.starter.modules.accounts.validator import AccountValidator
from app.starter.resources import message
from app.starter.security import Hasher
from app.starter.unit_of_work import request_unit_of_work
from app.starter.views import AccountLoginView, AccountRecoveryView, AccountResetView

bp = Blueprint("auth", __name__)


def account_service() -> AccountService:
    service = AccountService(request_unit_of_work(), Hasher())
    account = getattr(g, "current_account", None)
    service.current_account_id = account.id if account else None
    return service


def account_validator() -> AccountValidator:
    validator = AccountValidator(request_unit_of_work(), Hasher())
    account = getattr(g, "current_account", None)
    validator.current_account_id = account.id if account else None
    return validator


def load_current_account() -> None:
    """
    Loads g.current_account from the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex

    account_id = session.get("account_id")
    if not account_id:
        g.current_account = None
        return

    try:
        s = db_session()
        account = s.get(Account, int(account_id))
    except Exception as e:
        current_app.logger.error("load_current_account DB error (clearing session): %s", e)
        account = None
    if not account or account.is_locked:
        session.pop("account_id", None)
        g.current_account = None
        return
    g.current_account = account


def _safe_next(nxt: str) -> str | None:
    # Only local paths, to avoid open redirects.
    if nxt.startswith("/") and not nxt.startswith("//"):
        return nxt
    return None


@bp.get("/login")
def login():
    if getattr(g, "current_account", None):
        return redirect(url_for("routes.index"))
    view = AccountLoginView(next=(request.args.get("next") or "").strip())
    return render_template("auth/login.html", view=view)


@bp.post("/login")
def login_post():
    view = bind(AccountLoginView, request.form)
    validator = account_validator()
    s = db_session()

    if not validator.can_login(view):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_name="Account",
            metadata={"username": view.username},
        )
        s.commit()
        for e in validator.errors:
            flash(e, "danger")
        return render_template("auth/login.html", view=view), 200

    try:
        account_service().login(view.username, view.is_persistent)
        account = find_by_username(request_unit_of_work(), view.username)
        record_event(s, actor=account, action="auth.login", entity_name="Account", entity_id=str(account.id))
        s.commit()
    except Exception:
        current_app.logger.exception("Login POST crashed (username=%s request_id=%s)", view.username, getattr(g, "request_id", None))
        raise

    return redirect(_safe_next(view.next) or url_for("routes.index"))


@bp.get("/logout")
def logout():
    account = getattr(g, "current_account", None)
    if account:
        s = db_session()
        record_event(s, actor=account, action="auth.logout", entity_name="Account", entity_id=str(account.id))
        s.commit()
    account_service().logout()
    return redirect(url_for("auth.login"))


@bp.get("/recover")
def recover():
    return render_template("auth/recover.html", view=AccountRecoveryView())


@bp.post("/recover")
def recover_post():
    view = bind(AccountRecoveryView, request.form)
    validator = account_validator()
    if not validator.can_recover(view):
        for e in validator.errors:
            flash(e, "danger")
        return render_template("auth/recover.html", view=view), 200

    token = account_service().recover(view)
    if token:
        link = url_for("auth.reset", token=token, _external=True)
        minutes = int(recovery_token_lifetime().total_seconds() // 60)
        try:
            mail_client().send(view.email.strip().lower(), message("recovery_subject"), message("recovery_body", link, minutes))
        except MailError:
            current_app.logger.exception("Recovery mail to %s failed", view.email)
            raise
        s = db_session()
        record_event(s, actor=None, action="auth.recover", entity_name="Account", metadata={"email": view.email.strip().lower()})
        s.commit()

    # Same answer either way; do not reveal which emails exist.
    flash(message("recovery_sent"), "info")
    return redirect(url_for("auth.login"))


@bp.get("/reset/<token>")
def reset(token: str):
    validator = account_validator()
    if not validator.can_use_token(token):
        for e in validator.errors:
            flash(e, "danger")
        return redirect(url_for("auth.recover"))
    return render_template("auth/reset.html", view=AccountResetView(token=token))


@bp.post("/reset/<token>")
def reset_post(token: str):
    view = bind(AccountResetView, request.form, token=token)
    validator = account_validator()
    if not validator.can_reset(view):
        for e in validator.errors:
            flash(e, "danger")
        return render_template("auth/reset.html", view=view), 200

    account_service().reset(view)
    flash(message("password_reset"), "success")
    return redirect(url_for("auth.login"))
