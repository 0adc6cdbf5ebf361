"""
transparency/__init__.py

Flask application factory for the Government Spending Transparency API.

Requirements:
- The chain is the system of record; the API re-reads it on every request.
- One SpendingService per app, built from configuration (or injected, e.g. a
  test double) and stored in app.extensions. No module-level singleton.
- Domain errors map to JSON responses in one place (register_error_handlers).
"""

from __future__ import annotations

import asyncio
import logging

import click
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .errors import ChainUnavailable, TransparencyError
from .extensions import db, migrate
from .ledgers import connect
from .seed import department_catalog
from .service import SpendingService
from .units import CurrencyConverter
from .utils import SERVICE_KEY, get_service

logger = logging.getLogger(__name__)


def build_service(config) -> SpendingService:
    """Wire ledger adapters and display settings from a config mapping."""
    spending, feedback = connect(
        config["CHAIN_RPC_URL"],
        config["SPENDING_LEDGER_ADDRESS"],
        config["FEEDBACK_LEDGER_ADDRESS"],
        config.get("SIGNER_PRIVATE_KEY"),
    )
    return SpendingService(
        spending,
        feedback,
        converter=CurrencyConverter(config["DISPLAY_CURRENCY_RATE"], config["DISPLAY_CURRENCY_SYMBOL"]),
        catalog=department_catalog,
        full_scan_limit=config["FULL_SCAN_LIMIT"],
    )


def register_error_handlers(app: Flask) -> None:
    """JSON envelope for every failure: {"success": false, "error": "..."}."""

    @app.errorhandler(TransparencyError)
    def _domain_error(exc: TransparencyError):
        if isinstance(exc, ChainUnavailable):
            logger.error("%s", exc)
        else:
            logger.info("%s: %s", exc.__class__.__name__, exc)
        body = {"success": False, "error": exc.message}
        field = getattr(exc, "field", None)
        if field:
            body["field"] = field
        tx_hash = getattr(exc, "tx_hash", None)
        if tx_hash:
            body["txHash"] = tx_hash
        return jsonify(body), exc.http_status

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        return jsonify({"success": False, "error": exc.description}), exc.code


def create_app(config_object: str | object = "config.Config", service: SpendingService | None = None) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)

    app.extensions[SERVICE_KEY] = service if service is not None else build_service(app.config)

    if not app.config.get("ADMIN_API_TOKEN"):
        app.logger.warning("ADMIN_API_TOKEN is not set: admin endpoints are unprotected")

    register_error_handlers(app)

    # ----------------------------------------------------------------------
    # Blueprints
    # ----------------------------------------------------------------------
    from .blueprints.transactions import transactions_bp
    from .blueprints.departments import departments_bp
    from .blueprints.feedback import feedback_bp
    from .blueprints.admin import admin_bp

    app.register_blueprint(transactions_bp)
    app.register_blueprint(departments_bp)
    app.register_blueprint(feedback_bp)
    app.register_blueprint(admin_bp)

    # ----------------------------------------------------------------------
    # Health
    # ----------------------------------------------------------------------
    @app.route("/api/health")
    async def health():
        """Connection status for the UI banner; never fails with 5xx."""
        status = await get_service().chain_status()
        status["network"] = app.config.get("CHAIN_NETWORK")
        return jsonify({"success": True, "data": status})

    # ----------------------------------------------------------------------
    # CLI
    # ----------------------------------------------------------------------
    @app.cli.command("seed-departments")
    def seed_departments_command():
        """Create tables if needed and seed the ministry catalog."""
        from .seed import seed_departments

        db.create_all()
        created = seed_departments()
        click.echo(f"Department catalog seeded ({created} new).")

    @app.cli.command("chain-status")
    def chain_status_command():
        """Print node connectivity and ledger counters."""
        status = asyncio.run(get_service().chain_status())
        if not status["connected"]:
            click.echo(f"Not connected to {app.config['CHAIN_RPC_URL']}")
            raise SystemExit(1)
        click.echo(f"Connected to {app.config['CHAIN_RPC_URL']}")
        click.echo(f"Transactions: {status['transactionCount']}")
        click.echo(f"Feedbacks:    {status['feedbackCount']}")

    @app.cli.command("watch-stats")
    @click.option("--interval", type=float, default=None, help="Seconds between refreshes.")
    @click.option("--cycles", type=int, default=None, help="Stop after N refreshes.")
    def watch_stats_command(interval, cycles):
        """Poll overall statistics at a fixed interval."""
        from .polling import RefreshLoop

        def show(stats):
            click.echo(
                f"budget={stats['display']['totalBudget']} spent={stats['display']['totalSpent']} "
                f"utilization={stats['display']['utilizationRate']} "
                f"active={stats['activeProjects']} completed={stats['completedProjects']} "
                f"rating={stats['display']['averageRating']}"
            )

        def warn(exc):
            click.echo(f"! {exc}", err=True)

        loop = RefreshLoop(
            get_service().overall_stats,
            interval=interval or app.config["POLL_INTERVAL_SECONDS"],
            on_result=show,
            on_error=warn,
        )
        asyncio.run(loop.run(cycles))

    return app
