import os
import logging
from flask import Flask, request, jsonify

from .config import config
from .models import db
from .payloads import RegistrationRequest
from .store import LedgerStore
from .allocation_engine import AllocationEngine
from .catalog import Catalog
from shared.outcomes import ErrorKind, AllocationError, InvalidInputError
from shared.pubsub import Announcer, connect

logger = logging.getLogger(__name__)

# validate-secret keeps distinct codes per rejection; register reports all rejections as 400
SECRET_STATUS = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.CONFLICT: 400,
}


def create_app(config_name: str = None) -> Flask:
    """Application factory for the registration service."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # Initialize extensions
    db.init_app(app)
    app.redis = connect(app.config.get('REDIS_URL'))

    # Initialize services
    store = LedgerStore(
        max_retries=app.config['ALLOCATION_MAX_RETRIES'],
        backoff=app.config['ALLOCATION_RETRY_BACKOFF']
    )
    announcer = Announcer(app.redis, app.config['ANNOUNCEMENT_CHANNEL'])

    # Create tables
    with app.app_context():
        db.create_all()

    # Store services on app for access in routes
    app.store = store
    app.announcer = announcer
    app.engine = AllocationEngine(store, announcer)
    app.catalog = Catalog(store, announcer)

    register_api_routes(app)

    from .routes import admin
    app.register_blueprint(admin.bp)

    return app


def register_api_routes(app: Flask):
    """Register participant-facing API routes."""

    @app.errorhandler(InvalidInputError)
    def handle_invalid_input(e):
        return jsonify({'error': e.reason}), 400

    @app.errorhandler(AllocationError)
    def handle_allocation_error(e):
        # Transient and internal failures share a generic 500
        return jsonify({'error': 'Internal Server Error'}), 500

    # ==================== Registration ====================

    @app.route('/api/validate-secret', methods=['POST'])
    def api_validate_secret():
        """Pre-check a group's secret code. Reserves nothing."""
        data = request.get_json(silent=True) or {}

        result = app.engine.validate_secret(data.get('groupNumber'), data.get('secretCode'))
        if not result.ok:
            return jsonify({'valid': False, 'error': result.message}), SECRET_STATUS[result.kind]

        return jsonify({'valid': True})

    @app.route('/api/register', methods=['POST'])
    def api_register():
        """Claim a group and a project title for the leader's team."""
        registration = RegistrationRequest.from_payload(
            request.get_json(silent=True),
            max_members=app.config['MAX_TEAM_MEMBERS']
        )

        result = app.engine.register(registration)
        if not result.ok:
            return jsonify({
                'success': False,
                'message': result.message,
                'reason': result.kind.value
            }), 400

        return jsonify({'success': True, 'message': result.message})

    # ==================== Read-only views ====================

    @app.route('/api/titles', methods=['GET'])
    def api_list_titles():
        """List project titles for the registration form."""
        available_only = request.args.get('available', 'false').lower() == 'true'
        titles = app.catalog.list_titles(available_only=available_only)
        return jsonify({
            'titles': [t.to_dict() for t in titles],
            'count': len(titles)
        })

    @app.route('/api/teams/<path:leader_email>', methods=['GET'])
    def api_get_team(leader_email: str):
        """Team already registered by this leader (read-only view)."""
        team = app.catalog.get_team(leader_email)
        if not team:
            return jsonify({'error': 'Team not found'}), 404
        return jsonify(team.to_dict())

    # ==================== Health Check ====================

    @app.route('/health')
    def health_check():
        """Health check endpoint."""
        try:
            db.session.execute(db.text('SELECT 1'))
            db_ok = True
        except Exception:
            logger.exception("Database health check failed")
            db_ok = False

        if app.redis is None:
            redis_status = 'disabled'
        else:
            try:
                app.redis.ping()
                redis_status = 'connected'
            except Exception:
                redis_status = 'disconnected'

        status = 'healthy' if db_ok else 'unhealthy'
        code = 200 if status == 'healthy' else 503

        return jsonify({
            'status': status,
            'redis': redis_status,
            'database': 'connected' if db_ok else 'disconnected'
        }), code
