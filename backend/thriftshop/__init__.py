import os
import subprocess
from pathlib import Path

import click
import sentry_sdk
from flask import Flask, g, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from thriftshop.celery_app import create_celery_app
from thriftshop.extensions import cors, db, migrate
from thriftshop.integrations.payments.factory import payment_health
from thriftshop.models import Profile, User
from thriftshop.segments.segment_auth import auth_bp
from thriftshop.segments.segment_chat import chat_bp
from thriftshop.segments.segment_embeddings import embeddings_bp
from thriftshop.segments.segment_favorites import favorites_bp
from thriftshop.segments.segment_images import images_bp
from thriftshop.segments.segment_listings import listings_bp
from thriftshop.segments.segment_orders import orders_bp
from thriftshop.segments.segment_pages import pages_bp
from thriftshop.segments.segment_payment_webhooks import webhooks_bp
from thriftshop.segments.segment_payments import payments_bp
from thriftshop.segments.segment_search import search_bp
from thriftshop.segments.segment_transcribe import transcribe_bp
from thriftshop.utils.api import json_error
from thriftshop.utils.jwt_utils import user_id_from_header
from thriftshop.utils.observability import init_sentry, install_request_observers
from thriftshop.utils.rate_limit import enforce_request_limits, limiter_stats, rate_limit_enabled


SERVICE_NAME = "thriftshop-backend"
PROD_ENVS = ("prod", "production")
BOOTSTRAP_ENVS = ("dev", "development", "local", "test")
MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"

BLUEPRINTS = (
    auth_bp,
    listings_bp,
    orders_bp,
    payments_bp,
    webhooks_bp,
    search_bp,
    embeddings_bp,
    chat_bp,
    transcribe_bp,
    favorites_bp,
    images_bp,
    pages_bp,
)


def _truthy(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int, *, minimum: int, maximum: int) -> int:
    try:
        value = int((os.getenv(name) or "").strip() or default)
    except ValueError:
        value = int(default)
    return max(minimum, min(value, maximum))


def _alembic_head() -> str:
    try:
        from alembic.config import Config
        from alembic.script import ScriptDirectory

        cfg = Config(str(MIGRATIONS_DIR / "alembic.ini"))
        cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
        heads = ScriptDirectory.from_config(cfg).get_heads()
        return heads[0] if heads else "unknown"
    except Exception:
        return "unknown"


def _git_sha() -> str:
    sha = (os.getenv("GIT_SHA") or os.getenv("SOURCE_VERSION") or "").strip()
    if sha:
        return sha
    try:
        out = subprocess.check_output(["git", "rev-parse", "HEAD"], cwd=str(MIGRATIONS_DIR.parent), stderr=subprocess.DEVNULL)
    except (OSError, subprocess.CalledProcessError):
        return "unknown"
    return out.decode().strip()


def _check_production_env(env: str) -> None:
    if env not in PROD_ENVS:
        return
    if len((os.getenv("SECRET_KEY") or "").strip()) < 16:
        raise RuntimeError("SECRET_KEY must be set and at least 16 chars in production")
    if not (os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URI") or "").strip():
        raise RuntimeError("DATABASE_URL (or SQLALCHEMY_DATABASE_URI) must be set in production")


def _database_url() -> str:
    url = (os.getenv("SQLALCHEMY_DATABASE_URI") or os.getenv("DATABASE_URL") or "").strip()
    if not url:
        instance_dir = MIGRATIONS_DIR.parent / "instance"
        instance_dir.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{(instance_dir / 'thriftshop.db').as_posix()}"
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url


def _engine_options(database_url: str) -> dict:
    options = {
        "pool_pre_ping": True,
        "pool_recycle": _env_int("DB_POOL_RECYCLE_SECONDS", 1800, minimum=60, maximum=86400),
    }
    if not database_url.startswith("sqlite"):
        options.update(
            pool_size=_env_int("DB_POOL_SIZE", 10, minimum=1, maximum=200),
            max_overflow=_env_int("DB_MAX_OVERFLOW", 20, minimum=0, maximum=500),
            pool_timeout=_env_int("DB_POOL_TIMEOUT_SECONDS", 30, minimum=1, maximum=300),
        )
    return options


def _cors_origins(env: str) -> list:
    origins = [o.strip() for o in (os.getenv("CORS_ORIGINS") or "").split(",") if o.strip()]
    if not origins and env not in PROD_ENVS:
        return ["*"]
    return origins


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(HTTPException)
    def _http_error(error: HTTPException):
        if not request.path.startswith("/api/"):
            return error
        return json_error(error.description or error.name, int(error.code or 500), error=error.name)

    @app.errorhandler(Exception)
    def _unhandled_error(error: Exception):
        app.logger.exception("unhandled_exception path=%s", request.path)
        try:
            db.session.rollback()
        except SQLAlchemyError:
            app.logger.warning("rollback_failed path=%s", request.path)
        return json_error("Internal server error", 500, error="InternalServerError")


def _health_payload(env: str) -> dict:
    payload = {
        "ok": True,
        "service": SERVICE_NAME,
        "env": env,
        "db": "ok",
        "payments": payment_health(),
        "rate_limit": limiter_stats(),
        "git_sha": _git_sha(),
        "alembic_head": _alembic_head(),
    }
    try:
        with db.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        payload["db"] = "fail"
        payload["db_error"] = str(e)[:300]
    return payload


def _install_request_guards(app: Flask) -> None:
    @app.before_request
    def _capture_auth_context():
        g.auth_user_id = user_id_from_header(request.headers.get("Authorization", ""))
        sentry_sdk.set_user({"id": str(g.auth_user_id)} if g.auth_user_id is not None else None)

    @app.before_request
    def _global_rate_limit_guard():
        if app.config.get("TESTING") and not _truthy("RATE_LIMIT_IN_TESTS"):
            return None
        if not rate_limit_enabled(True):
            return None
        allowed, retry_after = enforce_request_limits(request, g.auth_user_id)
        if allowed:
            return None
        retry_after = max(1, int(retry_after or 1))
        app.logger.info("rate_limited path=%s retry_after=%s", request.path, retry_after)
        resp, status = json_error(
            "Too many requests",
            429,
            error={"code": "RATE_LIMITED", "retry_after_seconds": retry_after},
        )
        resp.headers["Retry-After"] = str(retry_after)
        return resp, status

    @app.teardown_request
    def _cleanup_db_session(exc):
        try:
            if exc is not None:
                db.session.rollback()
        finally:
            db.session.remove()


def _register_cli(app: Flask, env: str) -> None:
    @app.cli.command("bootstrap-admin")
    def bootstrap_admin():
        """Create or promote the admin named by ADMIN_EMAIL / ADMIN_PASSWORD."""
        if env not in BOOTSTRAP_ENVS and (os.getenv("ALLOW_ADMIN_BOOTSTRAP") or "").strip() != "1":
            raise click.ClickException("Admin bootstrap disabled. Set ALLOW_ADMIN_BOOTSTRAP=1 or THRIFTSHOP_ENV=dev.")
        email = User.normalize_email(os.getenv("ADMIN_EMAIL"))
        password = (os.getenv("ADMIN_PASSWORD") or "").strip()
        if not email or not password:
            raise click.ClickException("ADMIN_EMAIL and ADMIN_PASSWORD must be set.")

        user = User.by_email(email)
        try:
            if user is None:
                user = User(name=email.split("@")[0], email=email)
                db.session.add(user)
            user.role = "admin"
            user.set_password(password)
            db.session.flush()
            if Profile.query.filter_by(user_id=int(user.id)).first() is None:
                db.session.add(Profile(user_id=int(user.id), display_name=user.name, email=email))
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise click.ClickException("Failed to bootstrap admin.")
        click.echo(f"admin_bootstrap_ok {user.email}")


def create_app():
    app = Flask(__name__)
    init_sentry(app)

    env = (os.getenv("THRIFTSHOP_ENV") or "dev").strip().lower()
    _check_production_env(env)

    database_url = _database_url()
    app.config.update(
        SECRET_KEY=os.getenv("SECRET_KEY", "dev-secret"),
        SQLALCHEMY_DATABASE_URI=database_url,
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        SQLALCHEMY_ENGINE_OPTIONS=_engine_options(database_url),
    )

    cors.init_app(app, resources={r"/api/*": {"origins": _cors_origins(env)}})
    db.init_app(app)
    migrate.init_app(app, db)
    install_request_observers(app)
    _install_request_guards(app)
    _register_error_handlers(app)

    for bp in BLUEPRINTS:
        app.register_blueprint(bp)

    # Web processes that enqueue emails need a configured default Celery app.
    if _truthy("EMAIL_QUEUE"):
        app.extensions["celery"] = create_celery_app(app)

    @app.get("/api/health")
    def health():
        return jsonify(_health_payload(env))

    @app.get("/")
    def root():
        return jsonify({"ok": True, "service": SERVICE_NAME, "env": env})

    _register_cli(app, env)
    app.logger.info("app_ready env=%s blueprints=%s", env, len(BLUEPRINTS))
    return app
