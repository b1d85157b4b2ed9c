from flask import Flask, jsonify

from .config import load_config
from .extensions import init_extensions
from .logging_config import configure_logging


def create_app():
    """App factory entrypoint."""
    config = load_config()
    configure_logging(config.log_level)

    from . import runtime
    from .blueprints import ALL_BLUEPRINTS

    app = Flask(__name__)
    app.secret_key = config.flask_secret_key or runtime.new_id()
    app.config['MAX_CONTENT_LENGTH'] = runtime.MAX_CONTENT_LENGTH
    app.config['PREPTALK_CONFIG'] = config

    init_extensions(app, config)
    for blueprint in ALL_BLUEPRINTS:
        app.register_blueprint(blueprint)

    @app.route('/healthz')
    def healthz():
        return jsonify({'status': 'ok'}), 200

    return app
