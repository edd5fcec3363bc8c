import logging
import os

from flask import Flask
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_restx import Api

from issuance.catalog import catalog_namespace
from issuance.cli import register_commands
from issuance.config import Config, config_dict
from issuance.loans import loans_namespace
from issuance.reports import reports_namespace
from issuance.utils import init_engine, session

logger = logging.getLogger(__name__)


def create_app(config: type[Config] = None):
    if config is None:
        config = config_dict[os.getenv("FLASK_ENV", "dev")]

    logging.basicConfig(
        level=config.LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    app = Flask(__name__)
    CORS(app, origins="*")
    app.config.from_object(config)
    authorizations = {
        "Bearer Auth": {
            "type": "apiKey",
            "in": "header",
            "name": "Authorization",
            "description": "add a JWT with ** Bearer &lt;JWT&gt; to authorize",
        }
    }

    api = Api(
        app,
        title="Library issuance",
        description="Book catalogue, loans and reports",
        authorizations=authorizations,
        security="Bearer Auth",
    )
    JWTManager(app)

    app.extensions["issuance.engine"] = init_engine(config)

    @app.teardown_appcontext
    def remove_session(exception=None):
        session.remove()

    api.add_namespace(catalog_namespace, path="")
    api.add_namespace(loans_namespace, path="")
    api.add_namespace(reports_namespace)
    register_commands(app)

    logger.info("Created app with %s (%s)", config.__name__, config.DB)
    return app
