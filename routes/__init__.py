from flask import Blueprint, current_app

bp_dashboard     = Blueprint("dashboard", __name__, url_prefix="/dashboard")
bp_projects      = Blueprint("projects", __name__, url_prefix="/projects")
bp_activities    = Blueprint("activities", __name__, url_prefix="/activities")
bp_beneficiaries = Blueprint("beneficiaries", __name__, url_prefix="/beneficiaries")
bp_map           = Blueprint("map", __name__, url_prefix="/map")
bp_reports       = Blueprint("reports", __name__, url_prefix="/reports")
bp_admin         = Blueprint("admin", __name__, url_prefix="/admin")


def get_console():
    return current_app.extensions["console"]


def form_draft(form, record_id=None):
    draft = {k: v for k, v in form.items() if k != "csrf_token"}
    if record_id is not None:
        draft["id"] = record_id
    return draft
