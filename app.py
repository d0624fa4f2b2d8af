import logging
import math

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

import store
from chat import ChatRelay
from config import Config
from database import db, isoformat
from errors import TrekSafeError, ValidationError

logger = logging.getLogger(__name__)

api = Blueprint('api', __name__)

MIN_AGE = 0
MAX_AGE = 150


# --- Request parsing ---

def get_json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def require_text(data, field):
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{field}' is required")
    return value


def optional_text(data, field):
    value = data.get(field)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"'{field}' must be a string")
    return value


def parse_int(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def require_int(data, field, minimum, maximum):
    number = parse_int(data.get(field))
    if number is None:
        raise ValidationError(f"'{field}' must be an integer")
    if not minimum <= number <= maximum:
        raise ValidationError(f"'{field}' must be between {minimum} and {maximum}")
    return number


def require_number(data, field):
    value = data.get(field)
    if value is None or isinstance(value, bool):
        raise ValidationError(f"'{field}' must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"'{field}' must be a number")
    if not math.isfinite(number):
        raise ValidationError(f"'{field}' must be a finite number")
    return number


def get_coordinates():
    data = get_json_body()
    return require_number(data, 'lat'), require_number(data, 'lng')


# --- Routes ---

@api.route('/')
def home():
    return 'Trek-Safe Backend is running!', 200, {'Content-Type': 'text/plain; charset=utf-8'}


@api.route('/tourists', methods=['POST'])
def register_tourist():
    data = get_json_body()
    tourist = store.create_tourist(
        name=require_text(data, 'name'),
        age=require_int(data, 'age', MIN_AGE, MAX_AGE),
        id_proof=require_text(data, 'idProof'),
        emergency_contact=require_text(data, 'emergencyContact'),
        itinerary=optional_text(data, 'itinerary'),
    )
    return jsonify(tourist.to_dict()), 201


@api.route('/tourists')
def get_tourists():
    return jsonify([t.to_dict() for t in store.list_tourists()])


@api.route('/tourists/<tourist_id>')
def get_tourist(tourist_id):
    tourist = store.get_tourist(tourist_id)
    result = tourist.to_dict()
    result['locations'] = [loc.to_dict() for loc in store.list_locations(tourist_id)]
    result['sosAlerts'] = [a.to_dict() for a in store.list_sos_alerts(tourist_id)]
    return jsonify(result)


@api.route('/tourists/<tourist_id>/location', methods=['POST'])
def update_location(tourist_id):
    lat, lng = get_coordinates()
    location = store.record_location(tourist_id, lat, lng)
    return jsonify({
        'touristId': location.tourist_id,
        'lat': location.lat,
        'lng': location.lng,
        'timestamp': isoformat(location.timestamp),
    })


@api.route('/tourists/<tourist_id>/sos', methods=['POST'])
def trigger_sos(tourist_id):
    lat, lng = get_coordinates()
    alert = store.record_sos(tourist_id, lat, lng)
    return jsonify({
        'message': 'SOS Alert Recorded',
        'touristId': alert.tourist_id,
        'lat': alert.lat,
        'lng': alert.lng,
    })


@api.route('/sos_alerts')
def get_sos_alerts():
    return jsonify([a.to_dict() for a in store.list_all_sos_alerts()])


@api.route('/police/tourists')
def get_police_dashboard():
    return jsonify(store.latest_per_tourist())


@api.route('/chat', methods=['POST'])
def chat():
    message = require_text(get_json_body(), 'message')
    reply = current_app.extensions['chat_relay'].send(message)
    return jsonify({'reply': reply})


# --- Error handlers ---

def handle_trek_safe_error(error):
    return jsonify({'error': error.message}), error.status_code


def handle_storage_error(error):
    db.session.rollback()
    logger.error(f"Storage error: {error}")
    return jsonify({'error': str(error)}), 500


def handle_not_found(error):
    return jsonify({'error': 'Endpoint not found'}), 404


def handle_method_not_allowed(error):
    return jsonify({'error': 'Method not allowed'}), 405


def handle_unexpected_error(error):
    if isinstance(error, HTTPException):
        return jsonify({'error': error.description}), error.code
    db.session.rollback()
    logger.exception(f"Unhandled error: {error}")
    return jsonify({'error': 'Internal server error'}), 500


# --- App factory ---

def create_app(overrides=None, chat_relay=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    db.init_app(app)
    CORS(app)

    app.register_blueprint(api)
    app.register_error_handler(TrekSafeError, handle_trek_safe_error)
    app.register_error_handler(SQLAlchemyError, handle_storage_error)
    app.register_error_handler(404, handle_not_found)
    app.register_error_handler(405, handle_method_not_allowed)
    app.register_error_handler(Exception, handle_unexpected_error)

    app.extensions['chat_relay'] = chat_relay or ChatRelay.from_config(app.config)
    if not app.extensions['chat_relay'].configured:
        logger.warning("OPENAI_API_KEY not configured, /chat will fail")

    with app.app_context():
        db.create_all()
    logger.info(f"Connected to database {app.config['SQLALCHEMY_DATABASE_URI']}")

    return app


def run_server():
    """Function to run the Flask app, callable from another script."""
    logging.basicConfig(level=Config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = create_app()
    app.run(host='0.0.0.0', port=app.config['PORT'], debug=False)


if __name__ == '__main__':
    run_server()
