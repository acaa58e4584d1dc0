from flask import Flask

from .auth import login_manager
from .bootstrap import register_commands
from .config import Config
from .models import db
from .routes import api_bp


def create_app(config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config:
        app.config.update(config)
    app.logger.setLevel(app.config['LOG_LEVEL'])

    db.init_app(app)
    login_manager.init_app(app)
    app.register_blueprint(api_bp)
    register_commands(app)
    return app
