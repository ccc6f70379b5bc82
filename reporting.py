import logging
from datetime import date
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, CondPageBreak, PageBreak,
)

from aggregation import (
    beneficiary_stats, count_by, general_stats, impact_stats, program_breakdown, top_n, where,
)
from models import Activity, Beneficiary, Indicator, Project, label, PROJECT_STATUS_LABELS, ACTIVITY_TYPE_LABELS
from repository import Query

logger = logging.getLogger(__name__)

TEMPLATES = ("monthly", "impact", "annual")
TITLES = {
    "monthly": "Monthly Activity Report",
    "impact": "Impact Report",
    "annual": "Annual Report",
}

STANDING_RECOMMENDATIONS = [
    "Keep developing local partnerships.",
    "Strengthen monitoring and evaluation data collection.",
    "Expand vocational training activities.",
]


def resolve_targets(targets, indicators=()):
    """Configured impact targets, overridden by indicator rows with a matching code."""
    out = dict(targets)
    for ind in indicators:
        if ind.code in out and ind.target is not None:
            out[ind.code] = ind.target
    return out


def recommendations(general):
    recs = []
    if general["budget_execution_rate"] < 70:
        recs.append("Tighten budget follow-up and financial planning (budget execution below 70%).")
    if general["cancelled_activities"] > 0:
        recs.append("Analyse why activities were cancelled and put preventive measures in place.")
    recs.extend(STANDING_RECOMMENDATIONS)
    return recs


def compute_report_stats(data, targets):
    projects = data.get("projects", [])
    activities = data.get("activities", [])
    beneficiaries = data.get("beneficiaries", [])
    indicators = data.get("indicators", [])

    general = general_stats(projects, activities, beneficiaries)
    top_projects = top_n(projects, key=lambda p: p.planned_budget or 0, n=5)
    recent = where(activities, status="done")[:8]

    return {
        "generated_on": date.today(),
        "general": general,
        "beneficiaries": beneficiary_stats(beneficiaries),
        "impact": impact_stats(activities, beneficiaries, resolve_targets(targets, indicators)),
        "programs": program_breakdown(activities),
        "activity_types": count_by(activities, "type"),
        "project_statuses": count_by(projects, "status"),
        "top_projects": [{
            "name": p.name,
            "responsible": p.responsible or "",
            "period": f"{_fmt_date(p.start_date)} - {_fmt_date(p.end_date)}",
            "planned_budget": p.planned_budget or 0,
            "status": label(p.status, PROJECT_STATUS_LABELS),
        } for p in top_projects],
        "recent_activities": [{
            "name": a.name,
            "type": label(a.type, ACTIVITY_TYPE_LABELS),
            "date": _fmt_date(a.activity_date),
            "location": a.location,
            "beneficiaries": a.beneficiary_count or 0,
        } for a in recent],
        "recommendations": recommendations(general),
        "gaps": list(data.get("gaps", [])),
    }


def _fmt_date(d):
    return d.strftime("%d/%m/%Y") if d else ""


def _money(v, currency):
    return f"{v:,.0f} {currency}"


def _table(data, col_widths=None):
    tbl = Table(data, hAlign="LEFT", colWidths=col_widths, repeatRows=1)
    tbl.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("PADDING", (0, 0), (-1, -1), 6),
    ]))
    return tbl


class _Builder:
    """Collects platypus flowables section by section."""

    def __init__(self, threshold):
        self.styles = getSampleStyleSheet()
        self.threshold = threshold
        self.elements = []

    def section(self, title):
        self.elements.append(CondPageBreak(self.threshold))
        self.elements.append(Paragraph(escape(title), self.styles["Heading2"]))

    def para(self, text, style="Normal"):
        self.elements.append(Paragraph(escape(str(text)), self.styles[style]))

    def bullets(self, lines):
        for line in lines:
            self.elements.append(Paragraph("• " + escape(str(line)), self.styles["Normal"]))
        self.space()

    def space(self, h=0.2):
        self.elements.append(Spacer(1, h * inch))

    def table(self, data):
        self.elements.append(_table(data))
        self.space()


def _header(b, title, organization, stats):
    b.para(organization, "Title")
    b.para(title, "Heading1")
    b.para(f"Generated on {_fmt_date(stats['generated_on'])}")
    if stats["gaps"]:
        b.para("Data unavailable for: " + ", ".join(stats["gaps"]) + ". Figures below are partial.")
    b.space(0.3)


def _kpi_summary(b, stats, currency):
    g = stats["general"]
    b.section("Executive summary")
    b.bullets([
        f"Active projects: {g['active_projects']}",
        f"Completed activities: {g['done_activities']}",
        f"Beneficiaries supported: {g['total_beneficiaries']}",
        f"Total committed budget: {_money(g['total_budget'], currency)}",
        f"Budget execution rate: {g['budget_execution_rate']}%",
    ])


def _projects(b, stats, currency):
    if not stats["top_projects"]:
        return
    b.section("Ongoing projects")
    rows = [["Project", "Responsible", "Period", "Budget", "Status"]]
    for p in stats["top_projects"]:
        rows.append([p["name"], p["responsible"], p["period"], _money(p["planned_budget"], currency), p["status"]])
    b.table(rows)


def _activities(b, stats):
    if not stats["recent_activities"]:
        return
    b.section("Recent activities")
    b.bullets(
        f"{a['name']} ({a['type']}), {a['date']}, {a['location']}, {a['beneficiaries']} beneficiaries"
        for a in stats["recent_activities"]
    )


def _beneficiaries(b, stats):
    s = stats["beneficiaries"]
    if not s["total"]:
        return
    b.section("Beneficiary analysis")
    b.bullets([
        f"By sex: {s['women']} women ({s['women_pct']}%), {s['men']} men ({s['men_pct']}%)",
        f"Mean age: {s['age_mean']} years (from {s['age_min']} to {s['age_max']})",
        f"Main categories: {', '.join(s['top_categories'])}",
        f"Graduation rate: {s['graduation_rate']}%",
    ])


def _impact(b, stats):
    b.section("Key impact indicators")
    rows = [["Indicator", "Target", "Achieved", "% of target"]]
    for r in stats["impact"]:
        rows.append([r["indicator"], r["target"], r["realised"], f"{r['achieved_pct']}%"])
    b.table(rows)


def _programs(b, stats):
    if not stats["programs"]:
        return
    b.section("Analysis by programme")
    rows = [["Activity type", "Activities", "People reached"]]
    for r in stats["programs"]:
        rows.append([r["label"], str(r["activities"]), f"{r['reached']:g}"])
    b.table(rows)


def _recommendations(b, stats):
    b.section("Recommendations")
    b.bullets(stats["recommendations"])


def render_document(template, stats, organization="", currency="EUR", threshold=140):
    """Lay out the report as a PDF and return its bytes."""
    if template not in TEMPLATES:
        raise ValueError(f"Unknown report type: {template}")

    bio = BytesIO()
    doc = SimpleDocTemplate(bio, pagesize=A4, title=TITLES[template])
    b = _Builder(threshold)

    if template == "monthly":
        _header(b, TITLES[template], organization, stats)
        _kpi_summary(b, stats, currency)
        _projects(b, stats, currency)
        _activities(b, stats)
        _beneficiaries(b, stats)
        _recommendations(b, stats)
    elif template == "impact":
        _header(b, TITLES[template], organization, stats)
        _impact(b, stats)
        _programs(b, stats)
        _recommendations(b, stats)
    else:
        # cover page, then summary, then detailed analysis
        b.space(2.5)
        _header(b, f"{TITLES[template]} {stats['generated_on'].year}", organization, stats)
        b.elements.append(PageBreak())
        _kpi_summary(b, stats, currency)
        _impact(b, stats)
        b.elements.append(PageBreak())
        _programs(b, stats)
        _projects(b, stats, currency)
        _beneficiaries(b, stats)
        _recommendations(b, stats)

    doc.build(b.elements)
    bio.seek(0)
    return bio.getvalue()


def render_docx(stats, organization="", currency="EUR"):
    """Word version of the monthly summary."""
    from docx import Document

    doc = Document()
    doc.add_heading(organization or "Report", level=1)
    doc.add_paragraph(f"{TITLES['monthly']}, generated on {_fmt_date(stats['generated_on'])}")
    if stats["gaps"]:
        doc.add_paragraph("Data unavailable for: " + ", ".join(stats["gaps"]))

    g = stats["general"]
    doc.add_heading("Executive summary", level=2)
    t = doc.add_table(rows=1, cols=2)
    hdr = t.rows[0].cells
    hdr[0].text = "Indicator"
    hdr[1].text = "Value"
    for name, value in (
        ("Active projects", g["active_projects"]),
        ("Completed activities", g["done_activities"]),
        ("Beneficiaries", g["total_beneficiaries"]),
        ("Total budget", _money(g["total_budget"], currency)),
        ("Budget execution (%)", g["budget_execution_rate"]),
    ):
        row = t.add_row().cells
        row[0].text = name
        row[1].text = str(value)

    doc.add_heading("Ongoing projects", level=2)
    if not stats["top_projects"]:
        doc.add_paragraph("No projects recorded.")
    else:
        t = doc.add_table(rows=1, cols=4)
        hdr = t.rows[0].cells
        hdr[0].text = "Project"
        hdr[1].text = "Responsible"
        hdr[2].text = "Budget"
        hdr[3].text = "Status"
        for p in stats["top_projects"]:
            row = t.add_row().cells
            row[0].text = p["name"]
            row[1].text = p["responsible"] or ""
            row[2].text = _money(p["planned_budget"], currency)
            row[3].text = p["status"]

    doc.add_heading("Recommendations", level=2)
    for rec in stats["recommendations"]:
        doc.add_paragraph(rec, style="List Bullet")

    bio = BytesIO()
    doc.save(bio)
    bio.seek(0)
    return bio.getvalue()


class ReportGenerator:
    def __init__(self, repository, targets, organization="", currency="EUR", page_break_threshold=140):
        self.repository = repository
        self.targets = dict(targets)
        self.organization = organization
        self.currency = currency
        self.page_break_threshold = page_break_threshold

    def load_all(self):
        results = self.repository.fetch_many({
            "projects": ("projects", Query(order_by="created_at", descending=True)),
            "activities": ("activities", Query(order_by="activity_date", descending=True)),
            "beneficiaries": ("beneficiaries", Query(order_by="created_at", descending=True)),
            "indicators": ("indicators", Query()),
        })
        models = {
            "projects": Project,
            "activities": Activity,
            "beneficiaries": Beneficiary,
            "indicators": Indicator,
        }
        data = {"gaps": []}
        for name, model in models.items():
            res = results[name]
            if not res.ok:
                logger.warning("Report built without %s: %s", name, res.error)
                data["gaps"].append(name)
            data[name] = [model.from_row(r) for r in res.rows]
        return data

    def stats(self):
        return compute_report_stats(self.load_all(), self.targets)

    def build(self, template):
        stats = self.stats()
        pdf = render_document(
            template,
            stats,
            organization=self.organization,
            currency=self.currency,
            threshold=self.page_break_threshold,
        )
        return pdf, f"report_{template}_{stats['generated_on'].isoformat()}.pdf"

    def build_docx(self):
        stats = self.stats()
        return (
            render_docx(stats, organization=self.organization, currency=self.currency),
            f"report_monthly_{stats['generated_on'].isoformat()}.docx",
        )
