"""
app.py — Flask application factory for LegalBeacon.
"""

import logging
from datetime import datetime, timezone
from flask import Flask, jsonify, request, g
from sqlalchemy.exc import SQLAlchemyError

from config import get_config
from database import db
from utils.tenancy import TenantViolation


def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or get_config())

    _configure_logging(app)
    _init_extensions(app)
    _register_blueprints(app)
    _register_error_handlers(app)
    _register_hooks(app)
    _register_health_check(app)

    return app


# ─── Logging ──────────────────────────────────────────────────────────────────

def _configure_logging(app):
    level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    app.logger.setLevel(level)


# ─── Extensions ───────────────────────────────────────────────────────────────

def _init_extensions(app):
    db.init_app(app)
    with app.app_context():
        import models  # noqa: F401  (registers tables on db.metadata)


# ─── Blueprints ───────────────────────────────────────────────────────────────

def _register_blueprints(app):
    from routes.auth         import auth_bp
    from routes.dashboard    import dashboard_bp
    from routes.cases        import cases_bp
    from routes.case_records import case_records_bp
    from routes.parties      import parties_bp
    from routes.documents    import documents_bp
    from routes.firm         import firm_bp
    from routes.assistant    import assistant_bp

    app.register_blueprint(auth_bp,         url_prefix="/auth")
    app.register_blueprint(dashboard_bp,    url_prefix="/dashboard")
    app.register_blueprint(cases_bp,        url_prefix="/cases")
    app.register_blueprint(case_records_bp, url_prefix="/cases")
    app.register_blueprint(parties_bp,      url_prefix="/parties")
    app.register_blueprint(documents_bp,    url_prefix="/documents")
    app.register_blueprint(firm_bp,         url_prefix="/firm")
    app.register_blueprint(assistant_bp,    url_prefix="/assistant")


# ─── Error handlers ───────────────────────────────────────────────────────────

def _register_error_handlers(app):

    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({"success": False, "error": "Bad request.", "details": str(e)}), 400

    @app.errorhandler(401)
    def unauthorized(e):
        return jsonify({"success": False, "error": "Authentication required."}), 401

    @app.errorhandler(403)
    def forbidden(e):
        return jsonify({"success": False, "error": "Access denied."}), 403

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"success": False, "error": f"Route not found: {request.path}"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"success": False, "error": "Method not allowed."}), 405

    @app.errorhandler(TenantViolation)
    def tenant_violation(e):
        db.session.rollback()
        app.logger.warning(f"Tenant violation on {request.method} {request.path}: {e}")
        return jsonify({"success": False, "error": "Access denied."}), 403

    @app.errorhandler(SQLAlchemyError)
    def database_error(e):
        db.session.rollback()
        app.logger.exception(f"Database error on {request.method} {request.path}")
        return jsonify({"success": False, "error": "The change could not be saved."}), 500

    @app.errorhandler(500)
    def internal_error(e):
        app.logger.exception("Unhandled server error")
        return jsonify({"success": False, "error": "Internal server error."}), 500


# ─── Request / response hooks ─────────────────────────────────────────────────

def _register_hooks(app):
    from utils.auth import bind_request_principal

    @app.before_request
    def log_request():
        g.request_start = datetime.now(timezone.utc)
        app.logger.debug(f"--> {request.method} {request.path}")

    @app.before_request
    def bind_principal():
        bind_request_principal()

    @app.after_request
    def add_headers(response):
        # Security headers
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # CORS: same origin in production, open in dev
        if app.config.get("DEBUG"):
            response.headers["Access-Control-Allow-Origin"] = "*"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"

        if hasattr(g, "request_start"):
            elapsed = (datetime.now(timezone.utc) - g.request_start).total_seconds() * 1000
            app.logger.debug(f"<-- {response.status_code}  ({elapsed:.1f}ms)")

        return response


# ─── Health check ─────────────────────────────────────────────────────────────

def _register_health_check(app):

    @app.route("/health")
    def health():
        """
        GET /health
        Returns platform status. Checks DB connectivity.
        """
        try:
            db.session.execute(db.text("SELECT 1"))
            db_status = "ok"
        except SQLAlchemyError as e:
            db.session.rollback()
            db_status = f"error: {e.__class__.__name__}"

        return jsonify({
            "status": "ok" if db_status == "ok" else "degraded",
            "database": db_status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": "0.1.0",
        }), 200 if db_status == "ok" else 503

    @app.route("/")
    def index():
        return jsonify({
            "platform": "LegalBeacon",
            "status": "running",
            "docs": "/health",
        })


# ─── Entry point ──────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app = create_app()
    app.run(debug=True, port=5000, host="0.0.0.0")
