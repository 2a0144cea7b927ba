import logging
import os
from datetime import date
from uuid import uuid4

from dotenv import load_dotenv
from flask import Flask, jsonify, redirect, render_template, request, send_file, session, url_for

from levy_calc.document import OfficeDetails, PAYMENT_NOTE, render_estimate_pdf, validity_date
from levy_calc.main import row_to_dict, totals_to_dict
from levy_calc.session import EstimateSession, decode_signature
from levy_calc.utils import format_money, format_percent, format_year_month
from levy_calc_web.session_store import create_store_from_env

load_dotenv()

app = Flask(__name__)
app.config["ASSET_VERSION"] = os.environ.get("ASSET_VERSION", "1")
app.config["MAX_CONTENT_LENGTH"] = 2 * 1024 * 1024  # signature uploads
session_store = create_store_from_env(os.environ.get("LEVY_MAX_SESSIONS"))


def configure_logging(flask_app: Flask) -> None:
    """Send the app logger to stderr at ``LEVY_LOG_LEVEL`` (default INFO)."""

    level = os.environ.get("LEVY_LOG_LEVEL", "INFO").upper()
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("[%(asctime)s] %(levelname)s in %(module)s: %(message)s")
    )
    handler.setLevel(level)
    flask_app.logger.addHandler(handler)
    flask_app.logger.setLevel(level)


def resolve_secret_key(logger: logging.Logger) -> str:
    secret_key = os.environ.get("FLASK_SECRET_KEY")
    if secret_key:
        return secret_key
    logger.warning("FLASK_SECRET_KEY is not configured; using the development key.")
    return "dev-secret-key"


configure_logging(app)
app.secret_key = resolve_secret_key(app.logger)
app.jinja_env.filters["money"] = format_money
app.jinja_env.filters["percent"] = format_percent


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _apply_form(estimate_session: EstimateSession, form, files) -> None:
    """Copy the submitted fields into ``estimate_session``.

    Litres are applied for the rows that were on screen before the arrears
    count changes, so editing a row and shrinking the count in one submit
    keeps the edit. Invalid values are coerced by the session setters.
    Raises ``ValueError`` for an unreadable signature.
    """
    shown_count = estimate_session.config.arrears_count
    for m in range(shown_count + 1):
        key = f"litres_{m}"
        if key in form:
            estimate_session.set_quantity(m, form.get(key))

    if "base_month" in form:
        estimate_session.set_base_month(form.get("base_month", ""))
    if "arrears_count" in form:
        estimate_session.set_arrears_count(form.get("arrears_count"))
    if "unit_price" in form:
        estimate_session.set_unit_price(form.get("unit_price"))
    if "cf_fee" in form:
        estimate_session.set_period_fee(form.get("cf_fee"))
    if "officer_name" in form:
        estimate_session.set_officer_name(form.get("officer_name"))

    upload = files.get("signature")
    if upload and upload.filename:
        mime = upload.mimetype or ""
        if not mime.startswith("image/"):
            raise ValueError("Signature must be an image file")
        estimate_session.set_signature(upload.read(), mime)
        app.logger.info("Signature image uploaded (%s)", mime)
    elif form.get("signature_data"):
        image, mime = decode_signature(form["signature_data"])
        estimate_session.set_signature(image, mime)
        app.logger.info("Signature image received as base64 (%s)", mime)

    if form.get("action") == "clear_signature":
        estimate_session.set_signature(None)


def _estimate_payload(estimate_session: EstimateSession) -> dict:
    estimate = estimate_session.recompute()
    config = estimate.config
    return {
        "base_month": format_year_month(config.base_month),
        "arrears_count": config.arrears_count,
        "unit_price": float(config.unit_price),
        "cf_fee": float(config.period_fee),
        "rows": [row_to_dict(r) for r in estimate.rows],
        "totals": totals_to_dict(estimate.totals),
        "breakdown": estimate.breakdown.as_chart_data(),
    }


@app.route("/", methods=["GET", "POST"])
def index():
    error = None
    user_token = _ensure_user_token()
    estimate_session = session_store.load(user_token)

    if request.method == "POST":
        try:
            _apply_form(estimate_session, request.form, request.files)
        except ValueError as exc:
            error = str(exc)
        session_store.save(user_token, estimate_session)

    estimate = estimate_session.recompute()
    app.logger.info(
        "Recomputed estimate: %d rows, total due %s",
        len(estimate.rows),
        estimate.totals.total,
    )
    return render_template(
        "index.html",
        estimate=estimate,
        base_month=format_year_month(estimate.config.base_month),
        signatory=estimate_session.signatory,
        signature_url=estimate_session.signature_data_url(),
        chart_data=estimate.breakdown.as_chart_data(),
        error=error,
        asset_version=app.config["ASSET_VERSION"],
    )


@app.post("/reset")
def reset():
    user_token = _ensure_user_token()
    session_store.clear(user_token)
    return redirect(url_for("index"))


@app.get("/api/estimate")
def api_estimate():
    estimate_session = session_store.load(_ensure_user_token())
    return jsonify(_estimate_payload(estimate_session))


@app.get("/print")
def print_view():
    estimate_session = session_store.load(_ensure_user_token())
    estimate = estimate_session.recompute()
    office = OfficeDetails.from_env()
    return render_template(
        "print.html",
        estimate=estimate,
        office=office,
        signatory=estimate_session.signatory,
        signature_url=estimate_session.signature_data_url(),
        valid_till=validity_date(),
        issued=date.today().strftime("%d/%m/%Y"),
        payment_note=PAYMENT_NOTE,
    )


@app.get("/estimate.pdf")
def estimate_pdf():
    estimate_session = session_store.load(_ensure_user_token())
    buffer = render_estimate_pdf(estimate_session.recompute(), estimate_session.signatory)
    app.logger.info("Estimate PDF downloaded")
    return send_file(
        buffer,
        mimetype="application/pdf",
        as_attachment=True,
        download_name="levy-estimate.pdf",
    )


if __name__ == "__main__":
    print("Starting Levy Calculator web app...")
    app.run(host="0.0.0.0", port=8710, debug=True)
