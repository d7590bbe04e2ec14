"""
Flask Application Factory with SocketIO initialization.
"""

from flask import Flask
from flask_socketio import SocketIO

import sys
sys.path.insert(0, '.')
from config import SECRET_KEY

socketio = SocketIO()


def create_app(async_mode='eventlet'):
    app = Flask(__name__)

    app.config['SECRET_KEY'] = SECRET_KEY

    from app.routes import main_bp
    app.register_blueprint(main_bp)

    socketio.init_app(app, cors_allowed_origins="*", async_mode=async_mode)

    from app import socketio_handlers  # noqa: F401

    return app
