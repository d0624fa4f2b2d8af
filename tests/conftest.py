from datetime import datetime, timedelta

import pytest

from app import create_app
from database import db, Tourist
from errors import RelayFailure


class FakeRelay:
    configured = True

    def __init__(self):
        self.messages = []
        self.reply = "Stay on marked trails and carry water."
        self.fail = False

    def send(self, message):
        self.messages.append(message)
        if self.fail:
            raise RelayFailure()
        return self.reply


@pytest.fixture
def relay():
    return FakeRelay()


@pytest.fixture
def app(relay):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'ENFORCE_TOURIST_REFERENCES': True,
        'TOURIST_ID_ATTEMPTS': 5,
    }, chat_relay=relay)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def tourist_payload():
    return {
        'name': 'Tenzing Norgay',
        'age': 39,
        'idProof': 'PASSPORT-Z1234567',
        'emergencyContact': '+977-9800000000',
        'itinerary': 'Lukla - Namche Bazaar - Everest Base Camp',
    }


@pytest.fixture
def register(client, tourist_payload):
    """POST a tourist and return the response JSON."""
    def _register(**fields):
        payload = dict(tourist_payload, **fields)
        response = client.post('/tourists', json=payload)
        assert response.status_code == 201
        return response.get_json()
    return _register


@pytest.fixture
def backdate(app):
    """Move a tourist's registration time to a fixed point, `minutes` before noon 2026-01-01."""
    def _backdate(tourist_id, minutes):
        with app.app_context():
            tourist = db.session.get(Tourist, tourist_id)
            tourist.created_at = datetime(2026, 1, 1, 12, 0, 0) - timedelta(minutes=minutes)
            db.session.commit()
    return _backdate
