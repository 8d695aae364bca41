import logging
from datetime import timedelta

from flask import Flask, g, render_template, request
from dotenv import load_dotenv

from app.starter import rbac
from app.starter.config import load_config
from app.starter.db import init_db, session_factory, teardown_db_session
from app.starter.routes import bp as routes_bp
from app.starter.auth import bp as auth_bp, load_current_account
from app.starter.profile import bp as profile_bp
from app.starter.admin import bp as admin_bp

logger = logging.getLogger(__name__)

_UNGUARDED_PATHS = ("/static/", "/health", "/healthz")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=app.config["SESSION_LIFETIME_HOURS"])
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    from app.starter.grid_helpers import LinkAction
    from app.starter.resources import current_language, property_title, short_date_pattern
    from app.starter.security import ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.context_processor
    def _inject_helpers() -> dict:
        def has_perm(key: str) -> bool:
            return rbac.is_authorized_for(getattr(g, "current_account", None), key)

        return {
            "has_perm": has_perm,
            "current_account": getattr(g, "current_account", None),
            "language": current_language(),
            "title_of": property_title,
            "LinkAction": LinkAction,
        }

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str | None = None) -> str:
        if value is None:
            return ""
        if hasattr(value, "strftime"):
            return value.strftime(format or short_date_pattern())
        return str(value)

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_UNGUARDED_PATHS):
            return None
        ensure_csrf_token()
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # Login is reachable without a page carrying the token (e.g. a bookmarked form).
            if request.endpoint == "auth.login_post":
                return None
            if not validate_csrf(request):
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)
    rbac.provider = rbac.AuthorizationProvider(session_factory(app))

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(profile_bp, url_prefix="/profile")
    app.register_blueprint(admin_bp, url_prefix="/administration")

    def _load_account_wrapper():
        if request.path.startswith(_UNGUARDED_PATHS):
            g.current_account = None
            return None
        return load_current_account()

    # Before the CSRF guard so error pages still know who is logged in.
    app.before_request_funcs.setdefault(None, []).insert(0, _load_account_wrapper)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        rid = getattr(g, "request_id", None)
        app.logger.exception("Unhandled 500 (request_id=%s)", rid)
        return render_template("errors/500.html"), 500

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return render_template("errors/404.html"), 404

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        missing = getattr(g, "missing_permission", None)
        if missing:
            app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        return render_template("errors/403.html", missing_permission=missing), 403

    logger.info("create_app() complete; app ready to serve")

    return app
