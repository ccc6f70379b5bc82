import logging

from flask import flash, has_request_context

from aggregation import dashboard_kpis, count_by
from cartography import MapLayer
from exports import export_workbook, statistics_rows
from managers import ActivityManager, BeneficiaryManager, ProjectManager
from models import Activity, Beneficiary, Indicator, Partner, Project
from reporting import ReportGenerator
from repository import Query

logger = logging.getLogger(__name__)


def flash_notifier(message, category="info"):
    log = logger.warning if category == "error" else logger.info
    log("%s", message)
    if has_request_context():
        flash(message, category)


class Dashboard:
    def __init__(self, repository, notify=None):
        self.repository = repository
        self.notify = notify or flash_notifier
        self.projects = []
        self.activities = []
        self.beneficiaries = []
        self.kpis = dashboard_kpis([], [], [])
        self.gaps = []

    def refresh(self):
        results = self.repository.fetch_many({
            "projects": ("projects", Query(order_by="created_at", descending=True)),
            "activities": ("activities", Query(order_by="activity_date", descending=True)),
            "beneficiaries": ("beneficiaries", Query(order_by="created_at", descending=True)),
        })
        self.gaps = [name for name, res in results.items() if not res.ok]
        if self.gaps:
            self.notify("Dashboard is missing data for: " + ", ".join(self.gaps), "error")

        # a failed collection keeps its previous rows
        if results["projects"].ok:
            self.projects = [Project.from_row(r) for r in results["projects"].rows]
        if results["activities"].ok:
            self.activities = [Activity.from_row(r) for r in results["activities"].rows]
        if results["beneficiaries"].ok:
            self.beneficiaries = [Beneficiary.from_row(r) for r in results["beneficiaries"].rows]

        self.kpis = dashboard_kpis(self.projects, self.activities, self.beneficiaries)
        return self.kpis

    def snapshot(self):
        return {
            "summary": {
                **self.kpis,
                "activities_by_type": count_by(self.activities, "type"),
                "beneficiaries_by_category": count_by(self.beneficiaries, "category"),
            },
            "projects": [p.to_row() for p in self.projects],
            "activities": [a.to_row() for a in self.activities],
            "beneficiaries": [b.to_row() for b in self.beneficiaries],
        }


class Console:
    """Service objects built once per application and shared by the blueprints."""

    def __init__(self, repository, config, notify=None):
        self.repository = repository
        self.notify = notify or flash_notifier
        self.projects = ProjectManager(repository, self.notify)
        self.activities = ActivityManager(repository, self.notify)
        self.beneficiaries = BeneficiaryManager(repository, self.notify)
        self.dashboard = Dashboard(repository, self.notify)
        self.map = MapLayer(center=tuple(config["MAP_CENTER"]), zoom=config["MAP_ZOOM"])
        self.reports = ReportGenerator(
            repository,
            targets=config["IMPACT_TARGETS"],
            organization=config["ORGANIZATION_NAME"],
            currency=config["CURRENCY"],
            page_break_threshold=config["PAGE_BREAK_THRESHOLD"],
        )

        for manager in (self.projects, self.activities, self.beneficiaries):
            manager.subscribe(self.dashboard.refresh)

    def synchronize(self):
        """Test the connection, then reload every manager and the dashboard."""
        if not self.repository.ping():
            self.notify("Synchronization failed: the data store cannot be reached.", "error")
            return False
        ok = all([m.load() for m in (self.projects, self.activities, self.beneficiaries)])
        self.dashboard.refresh()
        if ok:
            self.notify("Synchronization complete.", "success")
        return ok

    def collection_counts(self):
        results = self.repository.fetch_many({
            name: (name, Query()) for name in ("projects", "activities", "beneficiaries", "indicators", "partners")
        })
        return {name: (len(res.rows) if res.ok else None) for name, res in results.items()}

    def list_indicators(self):
        res = self.repository.fetch_many({"indicators": ("indicators", Query(order_by="code"))})["indicators"]
        return [Indicator.from_row(r) for r in res.rows], res.ok

    def list_partners(self):
        res = self.repository.fetch_many({"partners": ("partners", Query(order_by="name"))})["partners"]
        return [Partner.from_row(r) for r in res.rows], res.ok

    def export_workbook(self):
        for m in (self.projects, self.activities, self.beneficiaries):
            m.load()
        return export_workbook({
            "Projects": self.projects.export_rows(),
            "Activities": self.activities.export_rows(),
            "Beneficiaries": self.beneficiaries.export_rows(),
            "Statistics": statistics_rows(
                self.projects.items, self.activities.items, self.beneficiaries.items
            ),
        })
