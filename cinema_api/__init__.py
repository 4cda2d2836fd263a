import sys

import click
from flask import Flask, jsonify
from flask_cors import CORS
from loguru import logger
from pymongo.errors import PyMongoError
from werkzeug.exceptions import HTTPException

from .api_cinemas.cinemas import cinemas_bp
from .api_movies.movies import movies_bp
from .api_users.users import users_bp
from .config import LOG_LEVEL
from .database import connect, ensure_indexes


def configure_logging(level: str = LOG_LEVEL):
    """Send loguru output to stderr at the given level."""
    logger.remove()
    logger.add(sys.stderr, level=level)


def register_error_handlers(app: Flask):
    """
    Render every failure as a ``{"error": ...}`` payload.

    Args:
        app (Flask): Application to configure.
    """

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(PyMongoError)
    def handle_database_error(error: PyMongoError):
        logger.exception(f"[API] Database error: {error}")
        return jsonify({"error": f"Database error: {error}"}), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.exception(f"[API] Unexpected error: {error}")
        return jsonify({"error": f"Internal server error: {error}"}), 500


def create_app(database=None):
    """
    Build the API application.

    Args:
        database (Database | None): Database handle to use. A new MongoDB
            client is opened from the environment settings when omitted.

    Returns:
        Flask: Configured application.
    """
    configure_logging()
    app = Flask(__name__)
    app.json.sort_keys = False
    CORS(app, origins="*", send_wildcard=True)

    app.extensions["mongo_db"] = database if database is not None else connect()

    app.register_blueprint(users_bp)
    app.register_blueprint(movies_bp)
    app.register_blueprint(cinemas_bp)
    register_error_handlers(app)

    @app.cli.command("create-indexes")
    def create_indexes_command():
        """Create the 2dsphere index used by the geospatial routes."""
        name = ensure_indexes(app.extensions["mongo_db"])
        click.echo(f"Index {name} created")

    return app
