from flask import Flask
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
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from asocijacije.main import main
    flask_app.register_blueprint(main)

    from asocijacije.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    # Room engine: timers run on Socket.IO background tasks, except in tests
    # where the manual scheduler lets the suite advance time explicitly.
    from asocijacije.services.games.timers import BackgroundScheduler, ManualScheduler
    from asocijacije.services.games.storage import Store
    from asocijacije.services.games.registry import RoomRegistry

    if flask_app.config.get('TESTING'):
        scheduler = ManualScheduler()
    else:
        scheduler = BackgroundScheduler(socketio, logger=flask_app.logger)
    store = Store(flask_app)
    registry = RoomRegistry(
        scheduler=scheduler,
        store=store,
        emit=_socket_emitter,
        config=flask_app.config,
        logger=flask_app.logger,
    )
    flask_app.extensions['scheduler'] = scheduler
    flask_app.extensions['store'] = store
    flask_app.extensions['rooms'] = registry

    from asocijacije.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from asocijacije.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            for name in ['igrac1', 'igrac2', 'igrac3', 'igrac4']:
                user = User(username=name, email=f'{name}@example.com')
                user.set_password('password')
                db.session.add(user)

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app


def _socket_emitter(event, payload, to):
    socketio.emit(event, payload, to=to, namespace='/ws')
