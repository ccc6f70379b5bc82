from flask import render_template, request, redirect, url_for, flash, Response
from errors import NotFoundError, ValidationError
from exports import export_filename, export_table
from models import PROJECT_STATUSES, PROJECT_STATUS_LABELS
from routes import bp_projects, get_console, form_draft


def _form(project=None, draft=None, error=None):
    return render_template(
        "projects/form.html",
        project=project,
        draft=draft if draft is not None else (project.to_row() if project else {}),
        error=error,
        statuses=PROJECT_STATUSES,
        status_labels=PROJECT_STATUS_LABELS,
    )


@bp_projects.get("/")
def list_projects():
    manager = get_console().projects
    manager.load()
    search = request.args.get("search", "").strip()
    status = request.args.get("status", "")
    projects = manager.filter(search=search, status=status)
    return render_template(
        "projects/list.html",
        projects=projects, search=search, status=status,
        statuses=PROJECT_STATUSES, status_labels=PROJECT_STATUS_LABELS,
    )

@bp_projects.get("/create")
def create_project_form():
    return _form()

@bp_projects.post("/create")
def create_project():
    draft = form_draft(request.form)
    try:
        stored = get_console().projects.save(draft)
    except ValidationError as e:
        flash(e.message, "error")
        return _form(draft=draft, error=e)
    if stored is None:
        return _form(draft=draft)
    return redirect(url_for("projects.list_projects"))

@bp_projects.get("/<project_id>")
def view_project(project_id):
    manager = get_console().projects
    manager.load()
    try:
        p = manager.get(project_id)
    except NotFoundError:
        return redirect(url_for("projects.list_projects"))
    return render_template("projects/view.html", project=p)

@bp_projects.get("/<project_id>/edit")
def edit_project_form(project_id):
    manager = get_console().projects
    manager.load()
    try:
        p = manager.get(project_id)
    except NotFoundError:
        return redirect(url_for("projects.list_projects"))
    return _form(project=p)

@bp_projects.post("/<project_id>/edit")
def edit_project(project_id):
    manager = get_console().projects
    manager.load()
    try:
        p = manager.get(project_id)
    except NotFoundError:
        return redirect(url_for("projects.list_projects"))

    draft = form_draft(request.form, record_id=project_id)
    try:
        stored = manager.save(draft)
    except ValidationError as e:
        flash(e.message, "error")
        return _form(project=p, draft=draft, error=e)
    except NotFoundError:
        return redirect(url_for("projects.list_projects"))
    if stored is None:
        return _form(project=p, draft=draft)
    return redirect(url_for("projects.view_project", project_id=project_id))

@bp_projects.get("/<project_id>/delete")
def delete_project_confirm(project_id):
    manager = get_console().projects
    manager.load()
    try:
        p = manager.get(project_id)
    except NotFoundError:
        return redirect(url_for("projects.list_projects"))
    return render_template(
        "confirm_delete.html",
        title=p.name,
        warning="Deleting this project also deletes its activities. This cannot be undone.",
        action=url_for("projects.delete_project", project_id=project_id),
        cancel=url_for("projects.view_project", project_id=project_id),
    )

@bp_projects.post("/<project_id>/delete")
def delete_project(project_id):
    get_console().projects.remove(project_id, confirmed=request.form.get("confirm") == "yes")
    return redirect(url_for("projects.list_projects"))

@bp_projects.get("/export.csv")
def export_projects():
    manager = get_console().projects
    manager.load()
    if not manager.items:
        flash("No projects to export.", "error")
        return redirect(url_for("projects.list_projects"))
    return Response(
        export_table(manager.export_rows()),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={export_filename('projects', 'csv')}"},
    )
