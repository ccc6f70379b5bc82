import logging
import math
from datetime import date, datetime

from aggregation import age_stats, count_by
from errors import NetworkError, NotFoundError, ValidationError
from models import (
    Activity, Beneficiary, Project, NOT_AVAILABLE, label,
    PROJECT_STATUSES, ACTIVITY_TYPES, ACTIVITY_STATUSES, SEXES,
    BENEFICIARY_CATEGORIES, SUPPORT_TYPES, BENEFICIARY_STATUSES,
    PROJECT_STATUS_LABELS, ACTIVITY_TYPE_LABELS, ACTIVITY_STATUS_LABELS,
    SEX_LABELS, CATEGORY_LABELS, SUPPORT_TYPE_LABELS, BENEFICIARY_STATUS_LABELS,
)
from repository import Query

logger = logging.getLogger(__name__)


def log_notifier(message, category="info"):
    logger.info("[%s] %s", category, message)


def _blank(v):
    return v is None or str(v).strip() == ""


def _text(draft, name):
    v = draft.get(name)
    return None if _blank(v) else str(v).strip()


class EntityManager:
    """In-memory cache of one collection plus the rows it references.

    Subclasses describe the collection, the searchable fields, the required
    form fields and implement clean() for the entity-specific rules.
    """

    collection = None
    model = None
    singular = "Record"
    order_by = "created_at"
    search_fields = ()
    required_fields = ()
    field_labels = {}
    references = {}

    def __init__(self, repository, notify=None):
        self.repository = repository
        self.notify = notify or log_notifier
        self.items = []
        self.lookups = {name: {} for name in self.references}
        self.listeners = []

    # -- loading -----------------------------------------------------------

    def load(self):
        specs = {"items": (self.collection, Query(order_by=self.order_by, descending=True))}
        for name in self.references:
            specs[name] = (name, Query(order_by="name"))

        results = self.repository.fetch_many(specs)

        main = results["items"]
        if not main.ok:
            logger.warning("Keeping %d cached %s: %s", len(self.items), self.collection, main.error)
            self.notify(f"Could not load {self.collection}: {main.error}", "error")
            return False
        self.items = [self.model.from_row(r) for r in main.rows]

        for name, model in self.references.items():
            res = results[name]
            if res.ok:
                self.lookups[name] = {str(r.get("id")): model.from_row(r) for r in res.rows}
            else:
                self.notify(f"Could not load {name}; related names may show {NOT_AVAILABLE}.", "error")
        return True

    def get(self, record_id):
        for item in self.items:
            if str(item.id) == str(record_id):
                return item
        raise NotFoundError(self.collection, record_id)

    def lookup_name(self, reference, record_id):
        if _blank(record_id):
            return NOT_AVAILABLE
        ref = self.lookups.get(reference, {}).get(str(record_id))
        return ref.name if ref is not None else NOT_AVAILABLE

    def choices(self, reference):
        return sorted(self.lookups.get(reference, {}).values(), key=lambda r: (r.name or "").lower())

    def filter(self, search="", **equals):
        return Query(equals=equals, search=search, search_fields=self.search_fields).apply(self.items)

    # -- validation --------------------------------------------------------

    def label_for(self, name):
        return self.field_labels.get(name, name)

    def validate(self, draft):
        for name in self.required_fields:
            if _blank(draft.get(name)):
                raise ValidationError(name, f'The field "{self.label_for(name)}" is required.')
        return self.clean(draft)

    def clean(self, draft):
        raise NotImplementedError

    def _number(self, draft, name, kind=float, minimum=None, maximum=None, default=None):
        raw = draft.get(name)
        if _blank(raw):
            return default
        try:
            value = float(str(raw).strip())
        except ValueError:
            raise ValidationError(name, f'"{self.label_for(name)}" must be a number.')
        if not math.isfinite(value):
            raise ValidationError(name, f'"{self.label_for(name)}" must be a finite number.')
        if kind is int:
            if not value.is_integer():
                raise ValidationError(name, f'"{self.label_for(name)}" must be a whole number.')
            value = int(value)
        if minimum is not None and value < minimum:
            raise ValidationError(name, self._range_message(name, minimum, maximum))
        if maximum is not None and value > maximum:
            raise ValidationError(name, self._range_message(name, minimum, maximum))
        return value

    def _range_message(self, name, minimum, maximum):
        if maximum is None:
            return f'"{self.label_for(name)}" cannot be lower than {minimum:g}.'
        return f'"{self.label_for(name)}" must be between {minimum:g} and {maximum:g}.'

    def _date(self, draft, name, default=None):
        raw = draft.get(name)
        if _blank(raw):
            return default
        if isinstance(raw, date):
            return raw
        try:
            return datetime.strptime(str(raw).strip(), "%Y-%m-%d").date()
        except ValueError:
            raise ValidationError(name, f'"{self.label_for(name)}" must be a date (YYYY-MM-DD).')

    def _choice(self, draft, name, allowed, default=None):
        value = _text(draft, name) or default
        if value is None:
            return None
        if value not in allowed:
            raise ValidationError(name, f'"{self.label_for(name)}" has an unknown value: {value}.')
        return value

    # -- writes ------------------------------------------------------------

    def subscribe(self, callback):
        self.listeners.append(callback)

    def _changed(self):
        for callback in self.listeners:
            callback()

    def save(self, draft):
        """Validate then create or update. ValidationError propagates to the caller.

        An update that matches no stored row raises NotFoundError.
        """
        record = self.validate(draft)
        record_id = str(draft.get("id") or "").strip()
        try:
            if record_id:
                stored = self.repository.update(self.collection, record_id, record)
            else:
                stored = self.repository.create(self.collection, record)
        except NetworkError as e:
            self.notify(str(e), "error")
            return None
        if record_id and stored is None:
            self.notify(f"{self.singular} no longer exists.", "error")
            self.load()
            raise NotFoundError(self.collection, record_id)

        self.notify(f"{self.singular} {'updated' if record_id else 'created'}.", "success")
        self.load()
        self._changed()
        return stored

    def remove(self, record_id, confirmed=False):
        if not confirmed:
            self.notify("Deletion cancelled: it must be confirmed.", "error")
            return False
        try:
            self.repository.delete(self.collection, record_id)
        except NetworkError as e:
            self.notify(str(e), "error")
            return False

        self.notify(f"{self.singular} deleted.", "success")
        self.load()
        self._changed()
        return True

    def export_rows(self, items=None):
        raise NotImplementedError


class ProjectManager(EntityManager):
    collection = "projects"
    model = Project
    singular = "Project"
    search_fields = ("name", "responsible", "objectives")
    required_fields = ("name", "start_date", "end_date", "responsible", "planned_budget")
    field_labels = {
        "name": "Project name",
        "start_date": "Start date",
        "end_date": "End date",
        "responsible": "Responsible",
        "planned_budget": "Planned budget",
        "realized_budget": "Realized budget",
        "progress": "Progress",
        "status": "Status",
    }

    def clean(self, draft):
        start = self._date(draft, "start_date")
        end = self._date(draft, "end_date")
        if end <= start:
            raise ValidationError("end_date", "The end date must be after the start date.")

        planned = self._number(draft, "planned_budget")
        if planned <= 0:
            raise ValidationError("planned_budget", "The planned budget must be greater than 0.")
        realized = self._number(draft, "realized_budget", minimum=0, default=0.0)
        progress = self._number(draft, "progress", kind=int, minimum=0, maximum=100, default=0)

        return {
            "name": _text(draft, "name"),
            "objectives": _text(draft, "objectives"),
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "responsible": _text(draft, "responsible"),
            "partners": _text(draft, "partners"),
            "planned_budget": planned,
            "realized_budget": realized,
            "status": self._choice(draft, "status", PROJECT_STATUSES, default="active"),
            "progress": progress,
        }

    def export_rows(self, items=None):
        return [{
            "name": p.name,
            "responsible": p.responsible,
            "start_date": p.start_date.isoformat() if p.start_date else "",
            "end_date": p.end_date.isoformat() if p.end_date else "",
            "status": label(p.status, PROJECT_STATUS_LABELS),
            "planned_budget": p.planned_budget,
            "realized_budget": p.realized_budget,
            "progress": p.progress or 0,
            "partners": p.partners,
            "objectives": p.objectives,
        } for p in (self.items if items is None else items)]


class ActivityManager(EntityManager):
    collection = "activities"
    model = Activity
    singular = "Activity"
    order_by = "activity_date"
    search_fields = ("name", "location", "responsible")
    required_fields = ("name", "project_id", "type", "activity_date", "location")
    references = {"projects": Project}
    field_labels = {
        "name": "Activity name",
        "project_id": "Project",
        "type": "Type",
        "activity_date": "Date",
        "location": "Location",
        "beneficiary_count": "Number of beneficiaries",
        "latitude": "Latitude",
        "longitude": "Longitude",
        "status": "Status",
    }

    def project_name(self, activity):
        return self.lookup_name("projects", activity.project_id)

    def clean(self, draft):
        activity_type = self._choice(draft, "type", ACTIVITY_TYPES)
        activity_date = self._date(draft, "activity_date")
        count = self._number(draft, "beneficiary_count", kind=int, minimum=0, default=0)
        latitude = self._number(draft, "latitude", minimum=-90, maximum=90)
        longitude = self._number(draft, "longitude", minimum=-180, maximum=180)

        return {
            "name": _text(draft, "name"),
            "project_id": _text(draft, "project_id"),
            "type": activity_type,
            "activity_date": activity_date.isoformat(),
            "location": _text(draft, "location"),
            "responsible": _text(draft, "responsible"),
            "beneficiary_count": count,
            "expected_results": _text(draft, "expected_results"),
            "obtained_results": _text(draft, "obtained_results"),
            "status": self._choice(draft, "status", ACTIVITY_STATUSES, default="planned"),
            "latitude": latitude,
            "longitude": longitude,
        }

    def export_rows(self, items=None):
        return [{
            "name": a.name,
            "project": self.project_name(a),
            "type": label(a.type, ACTIVITY_TYPE_LABELS),
            "activity_date": a.activity_date.isoformat() if a.activity_date else "",
            "location": a.location,
            "responsible": a.responsible or "",
            "beneficiary_count": a.beneficiary_count or 0,
            "status": label(a.status, ACTIVITY_STATUS_LABELS),
            "expected_results": a.expected_results or "",
            "obtained_results": a.obtained_results or "",
            "latitude": "" if a.latitude is None else a.latitude,
            "longitude": "" if a.longitude is None else a.longitude,
        } for a in (self.items if items is None else items)]


class BeneficiaryManager(EntityManager):
    collection = "beneficiaries"
    model = Beneficiary
    singular = "Beneficiary"
    search_fields = ("code_name", "observations")
    required_fields = ("code_name", "sex", "age", "category")
    references = {"projects": Project, "activities": Activity}
    field_labels = {
        "code_name": "Code / name",
        "sex": "Sex",
        "age": "Age",
        "category": "Category",
        "support_type": "Support type",
        "enrollment_date": "Enrollment date",
        "status": "Status",
    }

    def project_name(self, beneficiary):
        return self.lookup_name("projects", beneficiary.project_id)

    def activity_name(self, beneficiary):
        return self.lookup_name("activities", beneficiary.activity_id)

    def clean(self, draft):
        sex = self._choice(draft, "sex", SEXES)
        age = self._number(draft, "age", kind=int, minimum=0, maximum=120)
        category = self._choice(draft, "category", BENEFICIARY_CATEGORIES)
        enrolled = self._date(draft, "enrollment_date", default=date.today())

        return {
            "code_name": _text(draft, "code_name"),
            "sex": sex,
            "age": age,
            "category": category,
            "project_id": _text(draft, "project_id"),
            "activity_id": _text(draft, "activity_id"),
            "support_type": self._choice(draft, "support_type", SUPPORT_TYPES),
            "enrollment_date": enrolled.isoformat(),
            "status": self._choice(draft, "status", BENEFICIARY_STATUSES, default="active"),
            "observations": _text(draft, "observations"),
        }

    def statistics(self, items=None):
        items = self.items if items is None else items
        return {
            "total": len(items),
            "by_sex": count_by(items, "sex"),
            "by_category": count_by(items, "category"),
            "by_status": count_by(items, "status"),
            "by_support_type": count_by(items, "support_type"),
            "ages": age_stats(items),
        }

    def export_rows(self, items=None):
        return [{
            "code_name": b.code_name,
            "sex": label(b.sex, SEX_LABELS),
            "age": "" if b.age is None else b.age,
            "category": label(b.category, CATEGORY_LABELS),
            "project": self.project_name(b) if b.project_id else "",
            "support_type": label(b.support_type, SUPPORT_TYPE_LABELS),
            "enrollment_date": b.enrollment_date.isoformat() if b.enrollment_date else "",
            "status": label(b.status, BENEFICIARY_STATUS_LABELS),
            "observations": b.observations or "",
        } for b in (self.items if items is None else items)]
