"""Application factory."""

from __future__ import annotations

from flask import Flask

from authcore.core.config import BaseConfig, get_config, validate_config
from authcore.core.logger import configure_logging


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build the token service.

    Wiring order matters: extensions must be bound before the token services
    pick a store, and error handlers are registered last so they cover every
    blueprint.

    :param config: Config object or import path; ``APP_ENV`` decides when omitted.
    :param instance_relative_config: Also read ``instance/<filename>`` if present.
    :param instance_config_filename: Name of the optional instance config file.
    :raises RuntimeError: When :func:`validate_config` rejects the settings.
    """
    app = Flask(__name__, instance_relative_config=instance_relative_config)
    app.config.from_object(config if config is not None else get_config())
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)
    validate_config(app.config)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from authcore import cli
    from authcore.api import init_app as init_api
    from authcore.core import container, errors, extensions, logger

    for init in (
        extensions.init_app,
        logger.init_app,
        container.init_app,
        init_api,
        errors.init_app,
        cli.init_app,
    ):
        init(app)

    return app
