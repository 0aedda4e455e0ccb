from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
from sqlalchemy.exc import SQLAlchemyError
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Pending picks live for the lifetime of this process only
    from squares.services.games.pending import InMemoryPendingLedger
    flask_app.extensions['pending_ledger'] = InMemoryPendingLedger(
        ttl_seconds=flask_app.config.get('PENDING_TTL_SEC', 30)
    )

    from squares.main import main
    flask_app.register_blueprint(main)

    from squares.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from squares.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from squares.services.games.errors import GameError

    @flask_app.errorhandler(GameError)
    def handle_game_error(exc):
        return jsonify({'error': exc.message, 'code': exc.code}), exc.status_code

    @flask_app.errorhandler(SQLAlchemyError)
    def handle_storage_error(exc):
        db.session.rollback()
        flask_app.logger.exception(f"[storage] {exc.__class__.__name__}")
        return jsonify({'error': 'Internal server error'}), 500

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates all tables."""
        import squares.models  # noqa: F401
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
