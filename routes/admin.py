from flask import current_app, render_template, redirect, url_for
from routes import bp_admin, get_console


@bp_admin.get("/")
def admin_home():
    console = get_console()
    indicators, indicators_ok = console.list_indicators()
    partners, partners_ok = console.list_partners()
    return render_template(
        "admin/index.html",
        counts=console.collection_counts(),
        indicators=indicators, indicators_ok=indicators_ok,
        partners=partners, partners_ok=partners_ok,
        remote_url=current_app.config["REMOTE_URL"],
    )

@bp_admin.post("/sync")
def synchronize():
    get_console().synchronize()
    return redirect(url_for("admin.admin_home"))

@bp_admin.get("/setup")
def setup():
    if current_app.extensions["console"] is not None:
        return redirect(url_for("dashboard.dashboard_home"))
    return render_template("admin/setup.html", error=current_app.extensions["console_error"])
