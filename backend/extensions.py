"""Shared Flask extensions -- import from here to avoid circular imports.

Both instances are created unbound; app.py calls init_app(app) inside the
create_app() factory function.
"""

from flask_socketio import SocketIO
from flask_sqlalchemy import SQLAlchemy

socketio = SocketIO()
db = SQLAlchemy()
