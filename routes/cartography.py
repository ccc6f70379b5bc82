import json
from dataclasses import asdict

from flask import current_app, render_template, request, redirect, url_for, flash, Response
from cartography import map_stats
from exports import export_filename, export_geojson
from models import ACTIVITY_TYPE_LABELS
from routes import bp_map, get_console


def _filtered():
    console = get_console()
    manager = console.activities
    manager.load()
    project_id = request.args.get("project_id", "")
    activity_type = request.args.get("type", "")
    geocoded = [a for a in manager.items if a.has_coordinates]
    filtered = console.map.filter_activities(geocoded, project_id=project_id, activity_type=activity_type)
    names = {pid: p.name for pid, p in manager.lookups["projects"].items()}
    return manager, geocoded, filtered, names, project_id, activity_type


@bp_map.get("/")
def map_home():
    console = get_console()
    manager, geocoded, filtered, names, project_id, activity_type = _filtered()
    markers = console.map.refresh_markers(
        filtered,
        project_names=names,
        detail_url=lambda a: url_for("activities.view_activity", activity_id=a.id),
    )
    types = sorted({a.type for a in geocoded if a.type})
    return render_template(
        "map/index.html",
        markers=[asdict(m) for m in markers],
        view=asdict(console.map.view_for(markers)),
        stats=map_stats(filtered),
        projects=manager.choices("projects"),
        types=types, type_labels=ACTIVITY_TYPE_LABELS,
        project_id=project_id, activity_type=activity_type,
        tile_url=current_app.config["MAP_TILE_URL"],
        attribution=current_app.config["MAP_ATTRIBUTION"],
    )

@bp_map.get("/export.geojson")
def export_map():
    _, _, filtered, names, project_id, activity_type = _filtered()
    if not filtered:
        flash("No map data to export.", "error")
        return redirect(url_for("map.map_home", project_id=project_id, type=activity_type))
    return Response(
        json.dumps(export_geojson(filtered, names), ensure_ascii=False, indent=2),
        mimetype="application/geo+json",
        headers={"Content-Disposition": f"attachment; filename={export_filename('activities', 'geojson')}"},
    )
