import json
from datetime import datetime, timezone

from flask import render_template, Response, abort
import charts
from exports import export_filename
from routes import bp_dashboard, get_console


@bp_dashboard.get("/")
def dashboard_home():
    dashboard = get_console().dashboard
    dashboard.refresh()

    recent_activities = dashboard.activities[:10]
    recent_projects = dashboard.projects[:6]

    return render_template(
        "dashboard/index.html",
        stats=dashboard.kpis,
        gaps=dashboard.gaps,
        recent_activities=recent_activities,
        recent_projects=recent_projects,
    )

@bp_dashboard.get("/charts/<name>.png")
def chart(name):
    dashboard = get_console().dashboard
    if name == "activities":
        png = charts.activities_by_type(dashboard.activities)
    elif name == "beneficiaries":
        png = charts.beneficiaries_by_category(dashboard.beneficiaries)
    elif name == "budget":
        png = charts.budget_by_project(dashboard.projects)
    else:
        abort(404)
    return Response(png, mimetype="image/png")

@bp_dashboard.get("/export.json")
def export_dashboard():
    dashboard = get_console().dashboard
    dashboard.refresh()
    payload = {"exported_at": datetime.now(timezone.utc).isoformat(), **dashboard.snapshot()}
    return Response(
        json.dumps(payload, indent=2, ensure_ascii=False, default=str),
        mimetype="application/json",
        headers={"Content-Disposition": f"attachment; filename={export_filename('dashboard', 'json')}"},
    )
