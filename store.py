"""Persistence operations for tourists, location pings and SOS alerts.

All functions expect an application context; writes are committed before
they return.
"""
import logging

from flask import current_app
from sqlalchemy import and_, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from database import db, Tourist, Location, SosAlert, generate_tourist_id, isoformat
from errors import ConstraintViolation, NotFound, StorageFailure

logger = logging.getLogger(__name__)


def _commit():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Commit failed: {e}")
        raise StorageFailure(str(e)) from e


def _newest_first(model):
    return (model.timestamp.desc(), model.id.desc())


# --- Tourists ---

def create_tourist(name, age, id_proof, emergency_contact, itinerary=None):
    """Register a tourist under a freshly generated id.

    Retries with a new id when the generated one is already taken; gives up
    with ConstraintViolation after TOURIST_ID_ATTEMPTS collisions.
    """
    attempts = current_app.config.get('TOURIST_ID_ATTEMPTS', 5)
    for attempt in range(1, attempts + 1):
        tourist_id = generate_tourist_id()
        if db.session.get(Tourist, tourist_id) is not None:
            logger.warning(f"Tourist id {tourist_id} already taken (attempt {attempt}/{attempts})")
            continue
        tourist = Tourist(
            id=tourist_id,
            name=name,
            age=age,
            id_proof=id_proof,
            emergency_contact=emergency_contact,
            itinerary=itinerary,
        )
        db.session.add(tourist)
        try:
            _commit()
        except IntegrityError as e:
            if db.session.get(Tourist, tourist_id) is None:
                raise ConstraintViolation(str(e.orig)) from e
            # registered concurrently between the lookup and the insert
            logger.warning(f"Tourist id {tourist_id} already taken (attempt {attempt}/{attempts})")
            continue
        logger.info(f"Registered tourist {tourist.id} ({tourist.name})")
        return tourist
    raise ConstraintViolation(f"Could not allocate a unique tourist id after {attempts} attempts")


def get_tourist(tourist_id):
    tourist = db.session.get(Tourist, tourist_id)
    if tourist is None:
        raise NotFound()
    return tourist


def list_tourists():
    return Tourist.query.order_by(Tourist.created_at.desc()).all()


# --- Location pings & SOS alerts ---

def _check_reference(tourist_id):
    if current_app.config.get('ENFORCE_TOURIST_REFERENCES', True):
        get_tourist(tourist_id)


def _append(model, tourist_id, lat, lng):
    _check_reference(tourist_id)
    row = model(tourist_id=tourist_id, lat=lat, lng=lng)
    db.session.add(row)
    try:
        _commit()
    except IntegrityError as e:
        raise ConstraintViolation(str(e.orig)) from e
    return row


def record_location(tourist_id, lat, lng):
    return _append(Location, tourist_id, lat, lng)


def record_sos(tourist_id, lat, lng):
    alert = _append(SosAlert, tourist_id, lat, lng)
    logger.warning(f"SOS alert {alert.id} from tourist {tourist_id} at ({lat}, {lng})")
    return alert


def list_locations(tourist_id):
    return Location.query.filter_by(tourist_id=tourist_id).order_by(*_newest_first(Location)).all()


def list_sos_alerts(tourist_id):
    return SosAlert.query.filter_by(tourist_id=tourist_id).order_by(*_newest_first(SosAlert)).all()


def list_all_sos_alerts():
    return SosAlert.query.order_by(*_newest_first(SosAlert)).all()


# --- Police view ---

def _latest_per_tourist(model):
    """Subquery ranking each tourist's rows newest first; rank 1 is the latest."""
    return db.session.query(
        model.tourist_id.label('tourist_id'),
        model.lat.label('lat'),
        model.lng.label('lng'),
        model.timestamp.label('timestamp'),
        func.row_number().over(
            partition_by=model.tourist_id,
            order_by=_newest_first(model),
        ).label('recency'),
    ).subquery()


def latest_per_tourist():
    """Every tourist with its latest known position and latest SOS time.

    Tourists without pings or alerts are still listed, with nulls in place
    of the missing values. Newest registrations come first.
    """
    latest_location = _latest_per_tourist(Location)
    latest_sos = _latest_per_tourist(SosAlert)

    rows = (
        db.session.query(
            Tourist,
            latest_location.c.lat,
            latest_location.c.lng,
            latest_sos.c.timestamp,
        )
        .outerjoin(latest_location, and_(latest_location.c.tourist_id == Tourist.id,
                                         latest_location.c.recency == 1))
        .outerjoin(latest_sos, and_(latest_sos.c.tourist_id == Tourist.id,
                                    latest_sos.c.recency == 1))
        .order_by(Tourist.created_at.desc())
        .all()
    )

    summary = []
    for tourist, current_lat, current_lng, last_sos in rows:
        entry = tourist.to_dict()
        entry.update({
            'currentLat': current_lat,
            'currentLng': current_lng,
            'lastSOS': isoformat(last_sos),
        })
        summary.append(entry)
    return summary
