import logging

from flask import Flask, redirect, request, url_for
from config import Config
from console import Console
from errors import ConfigurationError
from extensions import csrf
from repository import RepositoryClient

from routes import (
    bp_dashboard, bp_projects, bp_activities, bp_beneficiaries, bp_map, bp_reports, bp_admin,
)

# Import route modules so handlers register on blueprints (required)
from routes import dashboard as _dashboard_routes        # noqa: F401
from routes import projects as _projects_routes          # noqa: F401
from routes import activities as _act_routes             # noqa: F401
from routes import beneficiaries as _ben_routes          # noqa: F401
from routes import cartography as _map_routes            # noqa: F401
from routes import reports as _rep_routes                # noqa: F401
from routes import admin as _admin_routes                # noqa: F401

logger = logging.getLogger(__name__)

SETUP_EXEMPT = {"admin.setup", "static"}


def create_app(config_class=Config, repository=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    csrf.init_app(app)

    app.extensions["console"] = None
    app.extensions["console_error"] = None
    if repository is None:
        try:
            repository = RepositoryClient(
                app.config["REMOTE_URL"],
                app.config["REMOTE_API_KEY"],
                timeout=app.config["REMOTE_TIMEOUT"],
                collections=app.config["REMOTE_COLLECTIONS"],
            )
        except ConfigurationError as e:
            logger.warning("Console starts in setup mode: %s", e)
            app.extensions["console_error"] = e
    if repository is not None:
        app.extensions["console"] = Console(repository, app.config)

    app.register_blueprint(bp_dashboard)
    app.register_blueprint(bp_projects)
    app.register_blueprint(bp_activities)
    app.register_blueprint(bp_beneficiaries)
    app.register_blueprint(bp_map)
    app.register_blueprint(bp_reports)
    app.register_blueprint(bp_admin)

    @app.before_request
    def require_configuration():
        if app.extensions["console"] is None and request.endpoint not in SETUP_EXEMPT:
            return redirect(url_for("admin.setup"))

    @app.get("/")
    def index():
        return redirect(url_for("dashboard.dashboard_home"))

    return app

if __name__ == "__main__":
    create_app().run(debug=True)
