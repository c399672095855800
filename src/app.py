import logging
import os
import sys

from flask import Flask, Response, jsonify

from config import AppEnvironment, BaseConfig, DevelopmentConfig, ProductionConfig, TestConfig
from library_config import YamlOptionsProvider
from logtools import get_logger, setup_logging
from routes import create_library_blueprint
from songlib import SongLibrary


def create_app(config_cls: type[BaseConfig] | None = None) -> Flask:
    config_cls = config_cls or get_configuration()

    # === Create Flask app ===
    app = Flask(__name__)
    app.config.from_object(config_cls)

    logger_setup(config=config_cls)
    # Setup Flask logging
    if "gunicorn" in sys.modules:
        gunicorn_logger = logging.getLogger("gunicorn.error")
        app.logger.handlers = gunicorn_logger.handlers
        app.logger.setLevel(gunicorn_logger.level)

    logger = get_logger(name=__name__)

    # === Library ===
    environment = AppEnvironment.from_config(config_cls)
    options_provider = YamlOptionsProvider(config_cls.LIBRARY_CONFIG, logger=logger)
    library = SongLibrary(
        options_provider=options_provider,
        environment=environment,
        logger=logger,
        status_root=config_cls.DATA_ROOT,
    )
    app.extensions["song_library"] = library

    @app.route("/health")
    def health() -> Response:
        """Reports whether the app is up and whether a scan is running."""
        return jsonify({"status": "ok", "scanning": library.is_scanning()})

    # === Blueprints ===
    app.register_blueprint(
        create_library_blueprint(library=library, logger=logger),
        url_prefix="/api/library",
    )

    return app


def get_configuration() -> type[BaseConfig]:
    """
    Determines and returns the appropriate configuration class for the current environment.

    Selects the configuration based on the APP_ENV environment variable,
    ensures necessary directories exist, and returns the configuration object.

    Returns:
        BaseConfig: The configuration object for the current environment.
    """
    CONFIG_MAP = {
        "development": DevelopmentConfig,
        "test": TestConfig,
        "production": ProductionConfig,
    }

    ENV = os.getenv("APP_ENV", "development")

    config = CONFIG_MAP.get(ENV, DevelopmentConfig)
    config.ensure_dirs()
    return config


def logger_setup(config: type[BaseConfig]) -> None:
    config.LOG_DIR.mkdir(parents=True, exist_ok=True)
    setup_logging(
        dir_output=str(config.LOG_DIR),
        base_file="app.log",
        log_level=config.LOG_LEVEL,
    )


def serve(debug: bool = True) -> None:
    """
    Starts the Flask application server.

    Runs the app on host 0.0.0.0 and port 5000, with debugging enabled or disabled based on the argument.

    Args:
        debug: Whether to run the server in debug mode. Defaults to True.
    """
    app = create_app()
    app.run(debug=debug, use_reloader=False, host="0.0.0.0", port=5000)


if __name__ == "__main__":
    serve(debug=True)
