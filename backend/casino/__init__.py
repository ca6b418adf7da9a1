from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

# Process-wide game state; bound to the app in create_app
from casino.services.games.hands import HandStore  # noqa: E402
from casino.services.games.scheduler import RoundRegistry  # noqa: E402

blackjack_hands = HandStore('bj')
poker_hands = HandStore('pk')
rounds = RoundRegistry()


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    blackjack_hands.init_app(flask_app)
    poker_hands.init_app(flask_app)
    rounds.init_app(flask_app)

    from casino.main import main
    flask_app.register_blueprint(main)

    from casino.api.wallet import wallet
    flask_app.register_blueprint(wallet, url_prefix='/api/wallet')

    from casino.api.casino import casino
    flask_app.register_blueprint(casino, url_prefix='/api/casino')

    from casino.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from casino.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from casino.services import ledger
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            users = ['testuser1', 'testuser2', 'testuser3']
            for u in users:
                user = User(username=u)
                user.set_password('password')
                db.session.add(user)
                db.session.commit()
                ledger.grant_bonus(user.id, flask_app.config['STARTING_BALANCE'])

            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app


def start_background_rounds(flask_app):
    """Start the Crash / Color loops and the idle-hand reaper."""
    rounds.start(flask_app, hand_stores=(('blackjack', blackjack_hands), ('poker', poker_hands)))
