from flask import render_template, request, redirect, url_for, flash, Response
from errors import NotFoundError, ValidationError
from exports import export_filename, export_table
from models import ACTIVITY_TYPES, ACTIVITY_STATUSES, ACTIVITY_TYPE_LABELS, ACTIVITY_STATUS_LABELS
from routes import bp_activities, get_console, form_draft


def _form(manager, activity=None, draft=None, error=None):
    return render_template(
        "activities/form.html",
        activity=activity,
        draft=draft if draft is not None else (activity.to_row() if activity else {}),
        error=error,
        projects=manager.choices("projects"),
        types=ACTIVITY_TYPES, type_labels=ACTIVITY_TYPE_LABELS,
        statuses=ACTIVITY_STATUSES, status_labels=ACTIVITY_STATUS_LABELS,
    )


def _load_one(activity_id):
    manager = get_console().activities
    manager.load()
    return manager, manager.get(activity_id)


@bp_activities.get("/")
def list_activities():
    manager = get_console().activities
    manager.load()
    search = request.args.get("search", "").strip()
    activity_type = request.args.get("type", "")
    project_id = request.args.get("project_id", "")

    activities = manager.filter(search=search, type=activity_type, project_id=project_id)
    return render_template(
        "activities/list.html",
        activities=activities, manager=manager,
        projects=manager.choices("projects"),
        search=search, activity_type=activity_type, project_id=project_id,
        types=ACTIVITY_TYPES, type_labels=ACTIVITY_TYPE_LABELS,
    )

@bp_activities.get("/create")
def create_activity_form():
    manager = get_console().activities
    manager.load()
    return _form(manager, draft={"project_id": request.args.get("project_id", "")})

@bp_activities.post("/create")
def create_activity():
    manager = get_console().activities
    draft = form_draft(request.form)
    try:
        stored = manager.save(draft)
    except ValidationError as e:
        flash(e.message, "error")
        manager.load()
        return _form(manager, draft=draft, error=e)
    if stored is None:
        return _form(manager, draft=draft)
    return redirect(url_for("activities.list_activities"))

@bp_activities.get("/<activity_id>")
def view_activity(activity_id):
    try:
        manager, a = _load_one(activity_id)
    except NotFoundError:
        return redirect(url_for("activities.list_activities"))
    return render_template("activities/view.html", activity=a, project_name=manager.project_name(a))

@bp_activities.get("/<activity_id>/edit")
def edit_activity_form(activity_id):
    try:
        manager, a = _load_one(activity_id)
    except NotFoundError:
        return redirect(url_for("activities.list_activities"))
    return _form(manager, activity=a)

@bp_activities.post("/<activity_id>/edit")
def edit_activity(activity_id):
    try:
        manager, a = _load_one(activity_id)
    except NotFoundError:
        return redirect(url_for("activities.list_activities"))

    draft = form_draft(request.form, record_id=activity_id)
    try:
        stored = manager.save(draft)
    except ValidationError as e:
        flash(e.message, "error")
        return _form(manager, activity=a, draft=draft, error=e)
    except NotFoundError:
        return redirect(url_for("activities.list_activities"))
    if stored is None:
        return _form(manager, activity=a, draft=draft)
    return redirect(url_for("activities.view_activity", activity_id=activity_id))

@bp_activities.get("/<activity_id>/delete")
def delete_activity_confirm(activity_id):
    try:
        _, a = _load_one(activity_id)
    except NotFoundError:
        return redirect(url_for("activities.list_activities"))
    return render_template(
        "confirm_delete.html",
        title=a.name,
        warning="This activity will be permanently deleted. This cannot be undone.",
        action=url_for("activities.delete_activity", activity_id=activity_id),
        cancel=url_for("activities.view_activity", activity_id=activity_id),
    )

@bp_activities.post("/<activity_id>/delete")
def delete_activity(activity_id):
    get_console().activities.remove(activity_id, confirmed=request.form.get("confirm") == "yes")
    return redirect(url_for("activities.list_activities"))

@bp_activities.get("/export.csv")
def export_activities():
    manager = get_console().activities
    manager.load()
    if not manager.items:
        flash("No activities to export.", "error")
        return redirect(url_for("activities.list_activities"))
    return Response(
        export_table(manager.export_rows()),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={export_filename('activities', 'csv')}"},
    )
