# utils/timezone.py
from datetime import datetime, timezone

import pytz
from flask import current_app, has_app_context

DEFAULT_TIMEZONE = "Africa/Dakar"


def utcnow():
    # naive UTC, matching the DateTime columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


def local_tz():
    name = DEFAULT_TIMEZONE
    if has_app_context():
        name = current_app.config.get("APP_TIMEZONE", DEFAULT_TIMEZONE)
    return pytz.timezone(name)


def to_local(dt):
    if dt is None:
        return None
    return dt.replace(tzinfo=timezone.utc).astimezone(local_tz())


def local_today():
    return datetime.now(local_tz()).date()
