# installments/utils/parsing.py
# Coerce request/JSON input into the types the ledger stores.

from datetime import datetime, time
from decimal import InvalidOperation
import uuid

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from ..exceptions import InvalidAmountError, ValidationError
from .money import round2


def as_amount(value):
    try:
        amount = round2(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError("Amount is not a valid number", amount=repr(value))
    if amount <= 0:
        raise InvalidAmountError("Amount must be greater than zero", amount=str(amount))
    return amount


def as_date(value, field):
    if value is None or value == "":
        raise ValidationError(f"{field} is required", field=field)
    if isinstance(value, datetime):
        return timezone.localdate(value) if timezone.is_aware(value) else value.date()
    if hasattr(value, "isoformat"):
        return value
    parsed = parse_date(str(value))
    if parsed is None:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)", field=field, value=str(value))
    return parsed


def as_datetime(value, field):
    if value is None or value == "":
        raise ValidationError(f"{field} is required", field=field)
    if isinstance(value, datetime):
        dt = value
    elif hasattr(value, "isoformat"):
        dt = datetime.combine(value, time.min)
    else:
        dt = parse_datetime(str(value))
        if dt is None:
            day = parse_date(str(value))
            if day is None:
                raise ValidationError(f"{field} must be a date or datetime", field=field, value=str(value))
            dt = datetime.combine(day, time.min)
    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt)
    return dt


def as_id(value, field):
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer id", **{field: str(value)})


def as_session(value):
    if value in (None, ""):
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError("checkout_session must be a UUID", checkout_session=str(value))
