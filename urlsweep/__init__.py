import logging
from flask import Flask, Response
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from . import config
from .logging_utils import configure_logging

__version__ = config.VERSION


def create_app():
    app = Flask(__name__)
    configure_logging()
    app.config['URLSWEEP_VERSION'] = config.VERSION

    # Use Redis storage for limiter when provided, otherwise fall back to in-memory storage
    limiter = Limiter(
        key_func=get_remote_address,
        app=app,
        default_limits=[config.rate_limit()],
        storage_uri=config.limiter_storage_uri(),
    )
    # Expose limiter for blueprints to use specific limits
    app.extensions['limiter'] = limiter

    from .routes.scan import bp as scan_bp
    app.register_blueprint(scan_bp)

    @app.route('/metrics')  # type: ignore
    def _metrics():
        from . import metrics
        return Response(metrics.get_metrics(), mimetype=metrics.get_content_type())

    rules = sorted({r.rule for r in app.url_map.iter_rules()})
    logging.getLogger(__name__).info('urlsweep %s ready routes=%s', config.VERSION, rules)
    return app
