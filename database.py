import secrets
import string
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import ForeignKey

db = SQLAlchemy()

TOURIST_ID_PREFIX = 'TRS-'
TOURIST_ID_ALPHABET = string.ascii_uppercase + string.digits
TOURIST_ID_LENGTH = 9


def utcnow():
    """Naive UTC timestamp, the form SQLite hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_tourist_id():
    """Short shareable id like TRS-7K2QX90AB. Uniqueness is left to the primary key."""
    suffix = ''.join(secrets.choice(TOURIST_ID_ALPHABET) for _ in range(TOURIST_ID_LENGTH))
    return TOURIST_ID_PREFIX + suffix


def isoformat(value):
    return value.isoformat() if value is not None else None


class Tourist(db.Model):
    __tablename__ = 'tourists'

    id = db.Column(db.String(13), primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    age = db.Column(db.Integer, nullable=False)
    id_proof = db.Column('idProof', db.String(100), nullable=False)
    emergency_contact = db.Column('emergencyContact', db.String(100), nullable=False)
    itinerary = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'age': self.age,
            'idProof': self.id_proof,
            'emergencyContact': self.emergency_contact,
            'itinerary': self.itinerary,
            'createdAt': isoformat(self.created_at),
        }


class Location(db.Model):
    __tablename__ = 'locations'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    tourist_id = db.Column('touristId', db.String(13), ForeignKey('tourists.id'), nullable=False, index=True)
    lat = db.Column(db.Float, nullable=False)
    lng = db.Column(db.Float, nullable=False)
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'touristId': self.tourist_id,
            'lat': self.lat,
            'lng': self.lng,
            'timestamp': isoformat(self.timestamp),
        }


class SosAlert(db.Model):
    __tablename__ = 'sos_alerts'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    tourist_id = db.Column('touristId', db.String(13), ForeignKey('tourists.id'), nullable=False, index=True)
    lat = db.Column(db.Float, nullable=False)
    lng = db.Column(db.Float, nullable=False)
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'touristId': self.tourist_id,
            'lat': self.lat,
            'lng': self.lng,
            'timestamp': isoformat(self.timestamp),
        }
