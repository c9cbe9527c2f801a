import os
import sys
from functools import wraps
from pathlib import Path

from flask import Flask, abort, render_template, request, redirect, session
import psycopg2
from waitress import serve

_project_root = Path(__file__).resolve().parents[1]
if str(_project_root) not in sys.path:
    sys.path.append(str(_project_root))

from backend import app_context
from backend.app.credits import PurchaseRedirect, build_user_menu
from backend.app.credits.menu import DEFAULT_USER_MENU
from backend.app.services.credits import get_credit_controller, get_credit_service

DB_CFG = dict(
    host=os.getenv("DB_HOST", "127.0.0.1"),
    port=int(os.getenv("DB_PORT", "5432")),
    dbname=os.getenv("DB_NAME", "members_db"),
    user=os.getenv("DB_USER", "members_user"),
    password=os.getenv("DB_PASSWORD", "members_pass"),
)
LOGIN_URL = os.getenv("LOGIN_URL", "/login")

def get_conn():
    return psycopg2.connect(**DB_CFG)

def current_user_id():
    user = session.get("user")
    if not user:
        abort(401)
    return int(user["id"])

app_context.configure(get_conn=get_conn, get_current_user=current_user_id)

app = Flask(__name__)
app.secret_key = os.getenv("FLASK_SECRET_KEY", "dev-secret")  # set a strong value in .env
app.config.update(
    SESSION_COOKIE_HTTPONLY=True,
    SESSION_COOKIE_SAMESITE="Lax",
    # Set to True only if you terminate TLS in front of Flask (HTTPS):
    SESSION_COOKIE_SECURE=False,
)

def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not session.get("user"):
            return redirect(f"{LOGIN_URL}?next={request.path}")
        return view(*args, **kwargs)
    return wrapped

@app.context_processor
def inject_user():
    menu = build_user_menu(DEFAULT_USER_MENU, get_credit_service()) if session.get("user") else []
    return {"current_user": session.get("user"), "user_menu": menu}

@app.route("/credits")
@login_required
def credits_index():
    page = request.args.get("page", default=1, type=int) or 1
    history = get_credit_controller().view_history(current_user_id(), page=page)
    return render_template("credits/index.html", history=history)

@app.route("/credits/add", methods=["GET", "POST"])
@login_required
def credits_add():
    controller = get_credit_controller()
    user_id = current_user_id()
    if request.method == "POST":
        # Misconfiguration errors are left to propagate as a 500.
        result = controller.submit_purchase(user_id, request.form.get("amount"))
        if isinstance(result, PurchaseRedirect):
            return redirect(result.redirect_url)
        status = 400 if result.validation_error else 200
        return render_template("credits/add.html", form=result), status
    return render_template("credits/add.html", form=controller.purchase_form(user_id))

if __name__ == "__main__":
    # For LAN access, bind to your host IP or 0.0.0.0
    serve(app, host=os.getenv("WEBUI_HOST", "0.0.0.0"), port=int(os.getenv("WEBUI_PORT", "5000")))
