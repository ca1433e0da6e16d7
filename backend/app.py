"""
=============================================================================
ECO-VILLAGE ENERGY MONITOR - MAIN FLASK APPLICATION
=============================================================================

This is the backend server for the community energy dashboard.
It provides REST API endpoints for:
- Logging in with an Emporia account (or launching the simulation)
- Daily / monthly usage series for the charts
- Totals, breakdown table and headline numbers per resident
- Exporting the usage as CSV
- AI insights on the community's consumption (Amazon Bedrock)

Every data endpoint accepts an optional ?dwelling_id=... filter
("all" by default).

How to run:
    python -m backend.app

Then visit: http://127.0.0.1:5000/status
=============================================================================
"""

# =============================================================================
# IMPORTS
# =============================================================================

import logging
import os

from flask import Flask, Response, jsonify, request

# dotenv - keeps credentials and feature flags out of the code
from dotenv import load_dotenv

# Must run before anything reads the environment
load_dotenv()

from backend.lib.eco_village_core.errors import (
    AuthError,
    NotAuthenticatedError,
    ServiceUnreachableError,
)
from backend.lib.eco_village_core.io import EXPORT_FILENAME, to_csv_string
from backend.lib.eco_village_core.processor import (
    ALL_DWELLINGS,
    community_breakdown,
    filter_by_dwelling,
    filter_records_by_residents,
    overview,
    to_daily_series,
    to_monthly_series,
    to_resident_totals,
)
from backend.lib.eco_village_core.summary import build_digest, request_summary
from backend.lib.emporia_source import EmporiaDataSource
from backend.lib.session import DashboardSession
from backend.lib.simulation_source import DEFAULT_SEED, SimulationDataSource

logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# =============================================================================
# CONFIGURATION
# =============================================================================

# Which source /login uses when the request doesn't say ("emporia" or "simulation")
DATA_SOURCE = os.getenv('DATA_SOURCE', 'emporia').lower()

# How many days of history to load per session
USAGE_HISTORY_DAYS = int(os.getenv('USAGE_HISTORY_DAYS', '30'))

# Seed for the simulation so demo data is reproducible
SIMULATION_SEED = int(os.getenv('SIMULATION_SEED', str(DEFAULT_SEED)))

# -----------------------------------------------------------------------------
# BEDROCK SERVICE - hosted language model for the insights panel
# -----------------------------------------------------------------------------
USE_BEDROCK = os.getenv('USE_BEDROCK', 'false').lower() == 'true'
bedrock_service = None

if USE_BEDROCK:
    try:
        from backend.lib.bedrock_service import BedrockService
        bedrock_service = BedrockService()
        logger.info("Bedrock insights enabled (model %s)", bedrock_service.model_id)
    except Exception as e:
        # Insights are optional; the rest of the dashboard still works
        logger.error("Bedrock initialization failed: %s. Insights disabled.", e)
        USE_BEDROCK = False

# -----------------------------------------------------------------------------
# DASHBOARD SESSION - owns the loaded community data
# -----------------------------------------------------------------------------
dashboard = DashboardSession(
    sources={
        "emporia": EmporiaDataSource,
        "simulation": lambda: SimulationDataSource(seed=SIMULATION_SEED),
    },
    default_source=DATA_SOURCE,
    history_days=USAGE_HISTORY_DAYS,
)

# =============================================================================
# FLASK APPLICATION
# =============================================================================

app = Flask(__name__)

# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def filtered_view(data, dwelling_id: str):
    """
    Residents of the selected dwelling and their usage records.

    Returns:
        tuple: (residents, records)
    """
    residents = filter_by_dwelling(data.residents, dwelling_id)
    records = filter_records_by_residents(data.usage, [r.id for r in residents])
    return residents, records


def not_logged_in():
    return jsonify({"error": "Not logged in"}), 401


# =============================================================================
# API ROUTES - SESSION
# =============================================================================

@app.route("/status", methods=["GET"])
def status():
    """
    Session state and configuration, handy as a health check.
    """
    body = {
        "authenticated": False,
        "source": dashboard.source_name,
        "default_source": dashboard.default_source,
        "insights_enabled": USE_BEDROCK and bedrock_service is not None,
    }
    try:
        data = dashboard.data()
    except NotAuthenticatedError:
        return jsonify(body)
    body.update({
        "authenticated": True,
        "residents": len(data.residents),
        "dwellings": len(data.dwellings),
        "records": len(data.usage),
    })
    return jsonify(body)


@app.route("/login", methods=["POST"])
def login():
    """
    Start a session.

    Request Body (JSON):
        {"email": "me@example.com", "password": "...", "demo": false}

    With "demo": true the simulation is used and the password is ignored.

    HTTP Status Codes:
        200: Logged in, data loaded
        400: Missing fields
        401: Credentials rejected
        502: Emporia could not be reached (try demo mode)
    """
    body = request.get_json(silent=True) or {}
    email = (body.get("email") or "").strip()
    password = body.get("password") or ""
    # only a JSON true selects demo mode; "false" and other strings do not
    demo = body.get("demo") is True
    source_name = "simulation" if demo else body.get("source")

    if not demo and (source_name or dashboard.default_source) == "emporia":
        if not email or not password:
            return jsonify({"error": "email and password required"}), 400

    try:
        data = dashboard.login(email, password, source_name=source_name)
    except ServiceUnreachableError as e:
        return jsonify({"error": str(e), "suggest_demo": True}), 502
    except AuthError as e:
        return jsonify({"error": str(e)}), 401
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "source": dashboard.source_name,
        "residents": len(data.residents),
        "dwellings": len(data.dwellings),
        "records": len(data.usage),
    })


@app.route("/logout", methods=["POST"])
def logout():
    dashboard.logout()
    return jsonify({"message": "Logged out"})


# =============================================================================
# API ROUTES - COMMUNITY DATA
# =============================================================================

@app.route("/dwellings", methods=["GET"])
def get_dwellings():
    try:
        data = dashboard.data()
    except NotAuthenticatedError:
        return not_logged_in()
    return jsonify({"dwellings": [d.to_dict() for d in data.dwellings]})


@app.route("/residents", methods=["GET"])
def get_residents():
    """
    Residents, optionally limited to one dwelling.

    Query Parameters:
        dwelling_id (optional): dwelling id or "all" (default)
    """
    try:
        data = dashboard.data()
    except NotAuthenticatedError:
        return not_logged_in()
    residents = filter_by_dwelling(data.residents, request.args.get("dwelling_id", ALL_DWELLINGS))
    return jsonify({"residents": [r.to_dict() for r in residents]})


@app.route("/usage/daily", methods=["GET"])
def usage_daily():
    """
    Daily usage series for the line chart.

    Example Response:
        {
            "dwelling_id": "all",
            "data": [
                {"date": "2024-01-01", "usage": {"r1": 5.0, "r2": 2.0}},
                {"date": "2024-01-02", "usage": {"r1": 3.0}}
            ]
        }

    A resident missing from a day's "usage" had no reading that day.
    """
    try:
        data = dashboard.data()
    except NotAuthenticatedError:
        return not_logged_in()
    dwelling_id = request.args.get("dwelling_id", ALL_DWELLINGS)
    _, records = filtered_view(data, dwelling_id)
    return jsonify({
        "dwelling_id": dwelling_id,
        "data": [row.to_dict() for row in to_daily_series(records)],
    })


@app.route("/usage/monthly", methods=["GET"])
def usage_monthly():
    try:
        data = dashboard.data()
    except NotAuthenticatedError:
        return not_logged_in()
    dwelling_id = request.args.get("dwelling_id", ALL_DWELLINGS)
    _, records = filtered_view(data, dwelling_id)
    return jsonify({
        "dwelling_id": dwelling_id,
        "data": [row.to_dict() for row in to_monthly_series(records)],
    })


@app.route("/usage/totals", methods=["GET"])
def usage_totals():
    """
    Total kWh per resident, largest first (bar chart).
    """
    try:
        data = dashboard.data()
    except NotAuthenticatedError:
        return not_logged_in()
    dwelling_id = request.args.get("dwelling_id", ALL_DWELLINGS)
    _, records = filtered_view(data, dwelling_id)
    totals = to_resident_totals(records, data.residents)
    return jsonify({
        "dwelling_id": dwelling_id,
        "data": [t.to_dict() for t in totals],
    })


@app.route("/usage/breakdown", methods=["GET"])
def usage_breakdown():
    """
    Community breakdown table: location, total, daily average and an
    efficiency badge (Efficient / Moderate / High) per resident.
    """
    try:
        data = dashboard.data()
    except NotAuthenticatedError:
        return not_logged_in()
    dwelling_id = request.args.get("dwelling_id", ALL_DWELLINGS)
    _, records = filtered_view(data, dwelling_id)
    totals = to_resident_totals(records, data.residents)
    rows = community_breakdown(totals, data.residents, data.dwellings, days=USAGE_HISTORY_DAYS)
    return jsonify({
        "dwelling_id": dwelling_id,
        "days": USAGE_HISTORY_DAYS,
        "data": [row.to_dict() for row in rows],
    })


@app.route("/usage/overview", methods=["GET"])
def usage_overview():
    """
    Headline numbers for the stat cards.

    Example Response:
        {"total_consumption": 1234.0, "active_meters": 20, "highest_user": "The Communes"}
    """
    try:
        data = dashboard.data()
    except NotAuthenticatedError:
        return not_logged_in()
    dwelling_id = request.args.get("dwelling_id", ALL_DWELLINGS)
    residents, records = filtered_view(data, dwelling_id)
    totals = to_resident_totals(records, data.residents)
    body = overview(totals, residents)
    body["dwelling_id"] = dwelling_id
    return jsonify(body)


# =============================================================================
# API ROUTES - EXPORT & INSIGHTS
# =============================================================================

@app.route("/export", methods=["GET"])
def export_csv():
    """
    Download the (filtered) usage as eco_village_usage.csv.

    Columns: Date,Resident,Dwelling,kWh
    """
    try:
        data = dashboard.data()
    except NotAuthenticatedError:
        return not_logged_in()
    _, records = filtered_view(data, request.args.get("dwelling_id", ALL_DWELLINGS))
    content = to_csv_string(records, data.residents, data.dwellings)
    return Response(
        content,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={EXPORT_FILENAME}"},
    )


@app.route("/insights", methods=["POST"])
def insights():
    """
    Ask the language model for a short analysis of the whole community.

    Always answers 200 once logged in: if Bedrock is off or fails, the
    "insight" field carries a fallback message instead.
    """
    try:
        data = dashboard.data()
    except NotAuthenticatedError:
        return not_logged_in()
    digest = build_digest(data.usage, data.residents)
    text = request_summary(digest, bedrock_service if USE_BEDROCK else None)
    return jsonify({"insight": text, "community_total": digest.community_total})


# =============================================================================
# RUN THE SERVER
# =============================================================================

if __name__ == "__main__":
    # debug=True reloads on code changes; never use it in production
    app.run(debug=True)
