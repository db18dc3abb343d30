from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def create_app(config_class=Config, prize_contract=None):
    """Build the Flask app.

    ``prize_contract`` replaces the web3-backed contract client, e.g. with an
    in-memory fake in tests.
    """
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from hoot.services.chain import Web3PrizeContract
    from hoot.services.games.distribution import DistributionConfig, DistributionOrchestrator

    distribution_config = DistributionConfig.from_mapping(flask_app.config)
    if prize_contract is None:
        prize_contract = Web3PrizeContract(
            distribution_config.rpc_url,
            distribution_config.distributor_key,
            distribution_config.receipt_timeout,
        )
    flask_app.extensions['prize_distributor'] = DistributionOrchestrator(distribution_config, prize_contract)

    from hoot.api.prizes import prizes
    # Mount under /api, one route per completion function
    flask_app.register_blueprint(prizes, url_prefix='/api')

    from hoot.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database schema."""
        import hoot.models  # noqa: F401
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
