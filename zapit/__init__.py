import logging

from flask import Flask
from werkzeug.exceptions import HTTPException

from .config import Settings, load_settings
from .exceptions import ZapitException, error_response, make_error_response
from .logging_utils import configure_logging


def create_app(scanner, settings: Settings = None):
    """Build the Flask application around an already constructed scanner.

    The scanner is passed in explicitly (see ``zapit.server``) and kept in
    ``app.extensions['zapit.scanner']`` for the request handlers.
    """
    if settings is None:
        settings = load_settings()
    configure_logging(settings.log_level, settings.log_file)

    app = Flask(__name__)
    # '/urlinfo/1/http://host' must reach the handler untouched
    app.url_map.merge_slashes = False
    app.extensions['zapit.scanner'] = scanner
    app.config['ZAPIT_SETTINGS'] = settings

    from .routes.urlinfo import bp as urlinfo_bp, json_response
    from .routes.system import system_bp
    app.register_blueprint(urlinfo_bp)
    app.register_blueprint(system_bp)

    log = logging.getLogger('zapit.app')

    @app.errorhandler(ZapitException)
    def _handle_zapit_error(exc: ZapitException):
        if exc.status_code >= 500:
            log.error('%s: %s', exc.error_code, exc.message)
        else:
            log.warning('%s: %s', exc.error_code, exc.message)
        body, status = error_response(exc)
        return json_response(body, status)

    @app.errorhandler(HTTPException)
    def _handle_http_error(exc: HTTPException):
        return json_response(make_error_response(exc.description or exc.name), exc.code or 500)

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        log.exception('unhandled error')
        return json_response(make_error_response(str(exc) or type(exc).__name__), 500)

    log.info('Route map initialized count=%d', len(list(app.url_map.iter_rules())))
    return app
