from flask import render_template, request, redirect, url_for, flash, Response
from errors import NotFoundError, ValidationError
from exports import export_filename, export_table
from models import (
    SEXES, SEX_LABELS, BENEFICIARY_CATEGORIES, CATEGORY_LABELS, SUPPORT_TYPES,
    SUPPORT_TYPE_LABELS, BENEFICIARY_STATUSES, BENEFICIARY_STATUS_LABELS,
)
from routes import bp_beneficiaries, get_console, form_draft


def _form(manager, beneficiary=None, draft=None, error=None):
    return render_template(
        "beneficiaries/form.html",
        beneficiary=beneficiary,
        draft=draft if draft is not None else (beneficiary.to_row() if beneficiary else {}),
        error=error,
        projects=manager.choices("projects"),
        activities=manager.choices("activities"),
        sexes=SEXES, sex_labels=SEX_LABELS,
        categories=BENEFICIARY_CATEGORIES, category_labels=CATEGORY_LABELS,
        support_types=SUPPORT_TYPES, support_labels=SUPPORT_TYPE_LABELS,
        statuses=BENEFICIARY_STATUSES, status_labels=BENEFICIARY_STATUS_LABELS,
    )


def _load_one(beneficiary_id):
    manager = get_console().beneficiaries
    manager.load()
    return manager, manager.get(beneficiary_id)


@bp_beneficiaries.get("/")
def list_beneficiaries():
    manager = get_console().beneficiaries
    manager.load()
    search = request.args.get("search", "").strip()
    category = request.args.get("category", "")
    project_id = request.args.get("project_id", "")

    beneficiaries = manager.filter(search=search, category=category, project_id=project_id)
    return render_template(
        "beneficiaries/list.html",
        beneficiaries=beneficiaries, manager=manager,
        stats=manager.statistics(beneficiaries),
        projects=manager.choices("projects"),
        search=search, category=category, project_id=project_id,
        categories=BENEFICIARY_CATEGORIES, category_labels=CATEGORY_LABELS,
        sex_labels=SEX_LABELS,
    )

@bp_beneficiaries.get("/create")
def create_beneficiary_form():
    manager = get_console().beneficiaries
    manager.load()
    return _form(manager)

@bp_beneficiaries.post("/create")
def create_beneficiary():
    manager = get_console().beneficiaries
    draft = form_draft(request.form)
    try:
        stored = manager.save(draft)
    except ValidationError as e:
        flash(e.message, "error")
        manager.load()
        return _form(manager, draft=draft, error=e)
    if stored is None:
        return _form(manager, draft=draft)
    return redirect(url_for("beneficiaries.list_beneficiaries"))

@bp_beneficiaries.get("/<beneficiary_id>")
def view_beneficiary(beneficiary_id):
    try:
        manager, b = _load_one(beneficiary_id)
    except NotFoundError:
        return redirect(url_for("beneficiaries.list_beneficiaries"))
    return render_template(
        "beneficiaries/view.html",
        beneficiary=b,
        project_name=manager.project_name(b),
        activity_name=manager.activity_name(b),
        sex_labels=SEX_LABELS, support_labels=SUPPORT_TYPE_LABELS,
    )

@bp_beneficiaries.get("/<beneficiary_id>/edit")
def edit_beneficiary_form(beneficiary_id):
    try:
        manager, b = _load_one(beneficiary_id)
    except NotFoundError:
        return redirect(url_for("beneficiaries.list_beneficiaries"))
    return _form(manager, beneficiary=b)

@bp_beneficiaries.post("/<beneficiary_id>/edit")
def edit_beneficiary(beneficiary_id):
    try:
        manager, b = _load_one(beneficiary_id)
    except NotFoundError:
        return redirect(url_for("beneficiaries.list_beneficiaries"))

    draft = form_draft(request.form, record_id=beneficiary_id)
    try:
        stored = manager.save(draft)
    except ValidationError as e:
        flash(e.message, "error")
        return _form(manager, beneficiary=b, draft=draft, error=e)
    except NotFoundError:
        return redirect(url_for("beneficiaries.list_beneficiaries"))
    if stored is None:
        return _form(manager, beneficiary=b, draft=draft)
    return redirect(url_for("beneficiaries.view_beneficiary", beneficiary_id=beneficiary_id))

@bp_beneficiaries.get("/<beneficiary_id>/delete")
def delete_beneficiary_confirm(beneficiary_id):
    try:
        _, b = _load_one(beneficiary_id)
    except NotFoundError:
        return redirect(url_for("beneficiaries.list_beneficiaries"))
    return render_template(
        "confirm_delete.html",
        title=b.code_name,
        warning="This beneficiary record will be permanently deleted. This cannot be undone.",
        action=url_for("beneficiaries.delete_beneficiary", beneficiary_id=beneficiary_id),
        cancel=url_for("beneficiaries.view_beneficiary", beneficiary_id=beneficiary_id),
    )

@bp_beneficiaries.post("/<beneficiary_id>/delete")
def delete_beneficiary(beneficiary_id):
    get_console().beneficiaries.remove(beneficiary_id, confirmed=request.form.get("confirm") == "yes")
    return redirect(url_for("beneficiaries.list_beneficiaries"))

@bp_beneficiaries.get("/export.csv")
def export_beneficiaries():
    manager = get_console().beneficiaries
    manager.load()
    if not manager.items:
        flash("No beneficiaries to export.", "error")
        return redirect(url_for("beneficiaries.list_beneficiaries"))
    return Response(
        export_table(manager.export_rows()),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={export_filename('beneficiaries', 'csv')}"},
    )
