"""
Slot calculation

Slots are half-hour boundaries inside the doctor's operating window, expressed
in the doctor's timezone. Each slot is also rendered in the requesting user's
timezone; the doctor-local label stays the key for reservations.

Everything here is pure: reservations and "now" are passed in.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from telehealth.errors import ValidationError

logger = logging.getLogger(__name__)

SLOT_LABEL_FORMAT = '%I:%M %p'

REASON_PAST = 'past'
REASON_BOOKED = 'booked'


@dataclass(frozen=True)
class SlotSettings:
    doctor_timezone: str = 'Asia/Kolkata'
    regular_start: int = 18
    regular_end: int = 22
    urgent_start: int = 10
    urgent_end: int = 22
    slot_minutes: int = 30

    @classmethod
    def from_config(cls, config):
        return cls(
            doctor_timezone=config.get('DOCTOR_TIMEZONE', 'Asia/Kolkata'),
            regular_start=config.get('REGULAR_WINDOW_START', 18),
            regular_end=config.get('REGULAR_WINDOW_END', 22),
            urgent_start=config.get('URGENT_WINDOW_START', 10),
            urgent_end=config.get('URGENT_WINDOW_END', 22),
            slot_minutes=config.get('SLOT_MINUTES', 30),
        )

    def window(self, urgent):
        if urgent:
            return self.urgent_start, self.urgent_end
        return self.regular_start, self.regular_end


@dataclass(frozen=True)
class OfferedSlot:
    doctor_label: str
    doctor_date: date
    local_label: str
    local_date: date
    starts_at: datetime
    available: bool
    already_booked: bool
    reason: Optional[str] = None
    local_fold: int = 0

    def to_dict(self):
        return {
            'time_slot': self.doctor_label,
            'doctor_date': self.doctor_date.isoformat(),
            'local_time': self.local_label,
            'local_date': self.local_date.isoformat(),
            'starts_at': self.starts_at.isoformat(),
            'available': self.available,
            'already_booked': self.already_booked,
            'reason': self.reason,
        }


def get_zone(name):
    """Resolve an IANA timezone name, raising ValidationError for unknown names."""
    if not name:
        raise ValidationError("Timezone is required")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone: {name}", timezone=name)


def parse_slot_label(label):
    """Parse "06:00 PM" (or "6:00 pm") into a time."""
    try:
        return datetime.strptime(str(label).strip().upper(), SLOT_LABEL_FORMAT).time()
    except ValueError:
        raise ValidationError(f"Invalid time slot: {label}", time_slot=label)


def format_slot_label(value):
    return value.strftime(SLOT_LABEL_FORMAT)


def normalize_slot_label(label):
    return format_slot_label(parse_slot_label(label))


def parse_date(value):
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    try:
        return datetime.strptime(str(value), '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError("Invalid date format. Use YYYY-MM-DD", date=value)


def slot_start(day, label, doctor_timezone):
    """Aware datetime of a doctor-local slot."""
    return datetime.combine(day, parse_slot_label(label), tzinfo=get_zone(doctor_timezone))


def to_user_time(start, user_timezone):
    """Convert an aware slot start to the user's timezone."""
    return start.astimezone(get_zone(user_timezone))


def to_doctor_slot(local_day, local_label, user_timezone, doctor_timezone, fold=0):
    """
    Map a user-local (date, label) back to the doctor's (date, label).

    A wall time repeated by a DST fall-back is resolved by ``fold``
    (0 for the first occurrence, 1 for the second).
    """
    local = datetime.combine(local_day, parse_slot_label(local_label), tzinfo=get_zone(user_timezone)).replace(fold=fold)
    doctor = local.astimezone(get_zone(doctor_timezone))
    return doctor.date(), format_slot_label(doctor.time())


def window_starts(day, urgent, settings):
    """Doctor-local slot starts for the selected window, ascending."""
    tz = get_zone(settings.doctor_timezone)
    start_hour, end_hour = settings.window(urgent)
    cursor = datetime.combine(day, time(start_hour), tzinfo=tz)
    end = datetime.combine(day, time(0), tzinfo=tz) + timedelta(hours=end_hour)
    step = timedelta(minutes=settings.slot_minutes)
    starts = []
    while cursor + step <= end:
        starts.append(cursor)
        cursor = cursor + step
    return starts


def compute_slots(
    day,
    user_timezone: str,
    urgent: bool = False,
    reserved_slots: Iterable[str] = (),
    now: Optional[datetime] = None,
    settings: Optional[SlotSettings] = None,
) -> List[OfferedSlot]:
    """
    Offerable slots for a doctor-local calendar date.

    Args:
        day: date (or YYYY-MM-DD string) in the doctor's timezone
        user_timezone: IANA name used for display labels
        urgent: select the urgent window instead of the regular one
        reserved_slots: doctor-local labels already held on that date
        now: current instant (aware); defaults to the wall clock
        settings: window configuration

    Returns:
        list of OfferedSlot sorted by doctor-local start
    """
    settings = settings or SlotSettings()
    day = parse_date(day)
    user_zone = get_zone(user_timezone)
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    reserved = {normalize_slot_label(label) for label in reserved_slots}

    slots = []
    for start in window_starts(day, urgent, settings):
        label = format_slot_label(start.time())
        local = start.astimezone(user_zone)
        reason = None
        if start <= now:
            reason = REASON_PAST
        elif label in reserved:
            reason = REASON_BOOKED
        slots.append(OfferedSlot(
            doctor_label=label,
            doctor_date=day,
            local_label=format_slot_label(local.time()),
            local_date=local.date(),
            starts_at=start,
            available=reason is None,
            already_booked=label in reserved,
            reason=reason,
            local_fold=local.fold,
        ))

    slots.sort(key=lambda slot: slot.starts_at)
    return slots


def find_slot(slots, label):
    label = normalize_slot_label(label)
    for slot in slots:
        if slot.doctor_label == label:
            return slot
    return None
