from flask import Flask, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO
from dotenv import load_dotenv
import logging
import os
from datetime import datetime
from database import db

load_dotenv()
# Load production environment only when deployed (not in local development)
if os.getenv('AWS_EXECUTION_ENV') and os.path.exists('.env.production'):
    load_dotenv('.env.production', override=True)

logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s'
)
logger = logging.getLogger(__name__)

app = Flask(__name__)

cors_origins = os.getenv('CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000').split(',')
CORS(app, origins=cors_origins)

# Get WebSocket allowed origins from environment
websocket_origins = os.getenv('WEBSOCKET_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000').split(',')
socketio = SocketIO(app, cors_allowed_origins=websocket_origins)

app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')

# League rules
app.config['MIN_MATCH_PARTICIPANTS'] = int(os.environ.get('MIN_MATCH_PARTICIPANTS', 3))
app.config['PERFORMANCE_MIN_MATCHES'] = int(os.environ.get('PERFORMANCE_MIN_MATCHES', 3))
app.config['PERFORMANCE_LIMIT'] = int(os.environ.get('PERFORMANCE_LIMIT', 20))
app.config['ATTENDANCE_TOP_N'] = int(os.environ.get('ATTENDANCE_TOP_N', 8))
app.config['RECENT_MATCHES_LIMIT'] = int(os.environ.get('RECENT_MATCHES_LIMIT', 50))
app.config['MONTHLY_WINNERS_START_YEAR'] = int(os.environ.get('MONTHLY_WINNERS_START_YEAR', 2026))

# Database configuration
DATABASE_URL = os.environ.get('DATABASE_URL') or \
    f"mysql+pymysql://{os.environ.get('DB_USER', 'root')}:" \
    f"{os.environ.get('DB_PASSWORD', 'password')}@" \
    f"{os.environ.get('DB_HOST', '127.0.0.1')}:" \
    f"{os.environ.get('DB_PORT', '3306')}/" \
    f"{os.environ.get('DB_NAME', 'league')}"

app.config['SQLALCHEMY_DATABASE_URI'] = DATABASE_URL
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

db.init_app(app)

# Register blueprints
from routes.players import players_bp
from routes.matches import matches_bp
from routes.rankings import rankings_bp
from routes.monthly_winners import monthly_winners_bp

app.register_blueprint(players_bp)
app.register_blueprint(matches_bp)
app.register_blueprint(rankings_bp)
app.register_blueprint(monthly_winners_bp)

from commands import register_commands
register_commands(app)

from periods import InvalidPeriod
from maintenance import MaintenanceError

@app.errorhandler(InvalidPeriod)
def handle_invalid_period(e):
    return jsonify({'error': str(e)}), 400

@app.errorhandler(MaintenanceError)
def handle_maintenance_error(e):
    return jsonify({'error': e.message, 'code': e.code}), 400

@app.route('/api/health')
def health_check():
    from repository import count_players, count_matches
    return jsonify({
        'status': 'League API is running',
        'timestamp': datetime.now().isoformat(),
        'players': count_players(active_only=True),
        'matches': count_matches()
    })

# WebSocket event handlers
@socketio.on('connect')
def handle_connect():
    logger.debug('Client connected')

@socketio.on('disconnect')
def handle_disconnect(reason=None):
    logger.debug('Client disconnected')

if __name__ == '__main__':
    # Test database connection
    try:
        with app.app_context():
            with db.engine.connect() as conn:
                conn.execute(db.text('SELECT 1'))
            db.create_all()
            logger.info('Database connection successful')
    except Exception:
        logger.exception('Database connection failed')

    # Run in debug mode for local development
    socketio.run(app, debug=True, host='0.0.0.0', port=5000)
