from datetime import date, datetime
from zoneinfo import ZoneInfo

from ..config import get_settings


def facility_zone() -> ZoneInfo:
    return ZoneInfo(get_settings().facility_timezone)


def facility_now() -> datetime:
    return datetime.now(facility_zone())


def facility_today() -> date:
    return facility_now().date()
