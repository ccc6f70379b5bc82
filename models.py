from dataclasses import dataclass, asdict, fields
from datetime import datetime, date
from collections.abc import Mapping
from typing import Optional

PROJECT_STATUSES = ("active", "completed", "paused")
ACTIVITY_TYPES = ("training", "workshop", "awareness", "support", "advocacy")
ACTIVITY_STATUSES = ("planned", "in_progress", "done", "cancelled")
SEXES = ("M", "F")
BENEFICIARY_CATEGORIES = ("women", "youth", "migrants", "disabled", "other")
SUPPORT_TYPES = ("psychosocial", "material", "training", "accompaniment")
BENEFICIARY_STATUSES = ("active", "inactive", "graduated")

PROJECT_STATUS_LABELS = {"active": "Active", "completed": "Completed", "paused": "Paused"}
ACTIVITY_TYPE_LABELS = {
    "training": "Training",
    "workshop": "Workshop",
    "awareness": "Awareness",
    "support": "Support",
    "advocacy": "Advocacy",
}
ACTIVITY_STATUS_LABELS = {
    "planned": "Planned",
    "in_progress": "In progress",
    "done": "Done",
    "cancelled": "Cancelled",
}
SEX_LABELS = {"M": "Man", "F": "Woman"}
CATEGORY_LABELS = {
    "women": "Women",
    "youth": "Youth",
    "migrants": "Migrants",
    "disabled": "Persons with disabilities",
    "other": "Other",
}
SUPPORT_TYPE_LABELS = {
    "psychosocial": "Psychosocial",
    "material": "Material",
    "training": "Training",
    "accompaniment": "Accompaniment",
}
BENEFICIARY_STATUS_LABELS = {"active": "Active", "inactive": "Inactive", "graduated": "Graduated"}

NOT_AVAILABLE = "N/A"


def label(value, mapping):
    if value is None or value == "":
        return ""
    return mapping.get(value, str(value).replace("_", " ").capitalize())


def field_value(item, name):
    """Read a field from a row dict or a record object."""
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def parse_date(v):
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    return datetime.strptime(str(v)[:10], "%Y-%m-%d").date()


def _parse_float(v):
    if v is None or v == "":
        return None
    return float(v)


def _parse_int(v):
    if v is None or v == "":
        return None
    return int(float(v))


class Record:
    """Shared row <-> dataclass conversion for the store's flat rows."""

    _dates = ()
    _floats = ()
    _ints = ()

    @classmethod
    def from_row(cls, row):
        known = {f.name for f in fields(cls)}
        values = {}
        for key, v in row.items():
            if key not in known:
                continue
            if key in cls._dates:
                v = parse_date(v)
            elif key in cls._floats:
                v = _parse_float(v)
            elif key in cls._ints:
                v = _parse_int(v)
            values[key] = v
        return cls(**values)

    def to_row(self):
        row = asdict(self)
        for key in self._dates:
            if row.get(key) is not None:
                row[key] = row[key].isoformat()
        if row.get("id") is None:
            row.pop("id", None)
        return row


@dataclass
class Project(Record):
    id: Optional[str] = None
    name: str = ""
    objectives: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    responsible: str = ""
    partners: Optional[str] = None
    planned_budget: Optional[float] = None
    realized_budget: Optional[float] = None
    status: str = "active"  # active|completed|paused
    progress: Optional[int] = None  # percent, 0..100
    created_at: Optional[str] = None

    _dates = ("start_date", "end_date")
    _floats = ("planned_budget", "realized_budget")
    _ints = ("progress",)

    @property
    def status_label(self):
        return label(self.status, PROJECT_STATUS_LABELS)


@dataclass
class Activity(Record):
    id: Optional[str] = None
    name: str = ""
    project_id: Optional[str] = None
    type: Optional[str] = None  # training|workshop|awareness|support|advocacy
    activity_date: Optional[date] = None
    location: str = ""
    responsible: Optional[str] = None
    beneficiary_count: Optional[int] = None
    expected_results: Optional[str] = None
    obtained_results: Optional[str] = None
    status: str = "planned"  # planned|in_progress|done|cancelled
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: Optional[str] = None

    _dates = ("activity_date",)
    _floats = ("latitude", "longitude")
    _ints = ("beneficiary_count",)

    @property
    def has_coordinates(self):
        return self.latitude is not None and self.longitude is not None

    @property
    def type_label(self):
        return label(self.type, ACTIVITY_TYPE_LABELS)

    @property
    def status_label(self):
        return label(self.status, ACTIVITY_STATUS_LABELS)


@dataclass
class Beneficiary(Record):
    id: Optional[str] = None
    code_name: str = ""
    sex: Optional[str] = None  # M|F
    age: Optional[int] = None
    category: Optional[str] = None
    project_id: Optional[str] = None
    activity_id: Optional[str] = None
    support_type: Optional[str] = None
    enrollment_date: Optional[date] = None
    status: str = "active"  # active|inactive|graduated
    observations: Optional[str] = None
    created_at: Optional[str] = None

    _dates = ("enrollment_date",)
    _ints = ("age",)

    @property
    def category_label(self):
        return label(self.category, CATEGORY_LABELS)

    @property
    def status_label(self):
        return label(self.status, BENEFICIARY_STATUS_LABELS)


@dataclass
class Indicator(Record):
    id: Optional[str] = None
    code: str = ""  # matched against IMPACT_TARGETS keys
    name: str = ""
    project_id: Optional[str] = None
    unit: Optional[str] = None
    baseline: Optional[float] = None
    target: Optional[float] = None
    current_value: Optional[float] = None

    _floats = ("baseline", "target", "current_value")


@dataclass
class Partner(Record):
    id: Optional[str] = None
    name: str = ""
    type: Optional[str] = None
    contact: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
