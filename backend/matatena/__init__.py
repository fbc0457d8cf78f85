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
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from matatena.main import main
    flask_app.register_blueprint(main)

    from matatena.api.matches import matches
    flask_app.register_blueprint(matches, url_prefix='/api/matches')

    from matatena.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from matatena.errors import MatchError

    @flask_app.errorhandler(MatchError)
    def handle_match_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    # Flask-Login user loader
    from matatena.models import Account

    @login_manager.user_loader
    def load_user(account_id):
        return Account.query.get(int(account_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        from matatena.errors import Unauthenticated
        return handle_match_error(Unauthenticated('Authentication required'))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed accounts
            for username in ['testuser1', 'testuser2', 'testuser3']:
                account = Account(username=username)
                account.set_password('password')
                db.session.add(account)

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
