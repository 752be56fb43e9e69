from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
from werkzeug.security import generate_password_hash
import click
from config import Config, REQUIRED_SETTINGS
from floortower.errors import ConfigError

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def _check_required_settings(flask_app):
    missing = [name for name in REQUIRED_SETTINGS if not flask_app.config.get(name)]
    if missing:
        raise ConfigError(f"Missing required settings: {', '.join(missing)}")


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    _check_required_settings(flask_app)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    # Only the hash is kept around for comparisons
    flask_app.config['ACCESS_KEY_HASH'] = generate_password_hash(flask_app.config['ACCESS_KEY'])

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or None
    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    login_manager.login_view = 'main.admin_login'
    migrate.init_app(flask_app, db)
    if allowed_origins:
        CORS(flask_app, supports_credentials=True, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from floortower.services.store import GameStateStore
    flask_app.extensions['game_store'] = GameStateStore(db)

    from floortower.main import main
    flask_app.register_blueprint(main)

    from floortower.api.state import state_api
    flask_app.register_blueprint(state_api, url_prefix='/api/state')

    # Importing here ensures the handlers bind to the initialized socketio instance
    from floortower.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from floortower.models import AdminUser

    @login_manager.user_loader
    def load_user(user_id):
        if user_id == AdminUser.id:
            return AdminUser()
        return None

    @click.command('seed-state')
    def seed_state_command():
        """Creates the singleton game state row if it is missing."""
        with flask_app.app_context():
            db.create_all()
            created = flask_app.extensions['game_store'].ensure_singleton()
            print('Game state created.' if created else 'Game state already present.')

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            flask_app.extensions['game_store'].ensure_singleton()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(seed_state_command)
    flask_app.cli.add_command(db_reset_command)

    return flask_app
