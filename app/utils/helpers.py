"""Shared utility functions used by services and blueprints.

parse_date:       returns None on bad input
parse_decimal:    raises ValidationError on bad input
commit_or_raise:  commit the unit of work or raise PersistenceError
get_or_404:       fetch by primary key or raise NotFoundError
json_object:      request body as a dict or raise ValidationError
"""
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from flask import request

from app.core.exceptions import NotFoundError, PersistenceError, ValidationError
from app.models import db

logger = logging.getLogger(__name__)


def get_or_404(model, pk, label=None):
    """Fetch a model instance by primary key or raise NotFoundError."""
    label = label or model.__name__
    obj = db.session.get(model, pk)
    if obj is None:
        raise NotFoundError(resource=label, resource_id=pk)
    return obj


def json_object():
    """Return the request's JSON body as a dict.

    A missing or unparseable body reads as ``{}``; any other JSON value
    (array, string, number) raises ValidationError.
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD.MM.YYYY
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


def parse_decimal(value, field, *, minimum=None, maximum=None, places=None):
    """Coerce a JSON number or numeric string to Decimal.

    Booleans are rejected even though they are ints in Python. ``places``
    caps the number of decimal places.
    """
    if isinstance(value, bool) or value is None or value == "":
        raise ValidationError(f"{field} must be a number")
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not number.is_finite():
        raise ValidationError(f"{field} must be a number")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    if maximum is not None and number > maximum:
        raise ValidationError(f"{field} must be at most {maximum}")
    if places is not None and number.as_tuple().exponent < -places:
        try:
            exact = number == number.quantize(Decimal(1).scaleb(-places))
        except InvalidOperation:
            exact = False
        if not exact:
            raise ValidationError(f"{field} allows at most {places} decimal places")
    return number


def clean_text(value):
    """Trim strings and strip angle brackets; non-strings pass through."""
    if not isinstance(value, str):
        return value
    return value.strip().replace("<", "").replace(">", "")


# ── Database commit helper ───────────────────────────────────────────────────

def commit_or_raise(what="change"):
    """Commit the current SQLAlchemy session or raise PersistenceError.

    IntegrityError   → PersistenceError("Duplicate or constraint violation")
    OperationalError → PersistenceError("Database error")
    Other            → PersistenceError("Database error")

    The session is rolled back before raising so the request leaves no
    half-applied state behind.
    """
    from sqlalchemy.exc import IntegrityError, OperationalError

    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error committing %s: %s", what, exc.orig)
        raise PersistenceError("Duplicate or constraint violation") from exc
    except OperationalError as exc:
        db.session.rollback()
        logger.exception("Database operational error committing %s", what)
        raise PersistenceError("Database error") from exc
    except Exception as exc:
        db.session.rollback()
        logger.exception("Unexpected database error committing %s", what)
        raise PersistenceError("Database error") from exc
