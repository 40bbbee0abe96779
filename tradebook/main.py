"""TradeBook — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
serving the analytics API or printing a one-off console report.
"""

import logging

from fastapi import FastAPI

from tradebook.api.routers import router

app = FastAPI(title="TradeBook Analytics API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("tradebook")


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse

    from tradebook.config import load_config
    from tradebook.content.client import ContentClient

    parser = argparse.ArgumentParser(description="TradeBook journal analytics")
    parser.add_argument(
        "--mode",
        choices=["serve", "report"],
        default="serve",
        help="Serve the analytics API or print a report (default: serve)",
    )
    parser.add_argument("--env", help="Path to a .env file")
    args = parser.parse_args()

    config = load_config(args.env)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    client = ContentClient(config)

    if args.mode == "report":
        _run_report(client, config)
    else:
        _run_server(client, config)


def _run_server(client, config) -> None:
    """Start the API server."""
    import uvicorn

    from tradebook.api.routers import configure_routers

    configure_routers(client, config.analytics_settings())
    logger.info("Analytics API available at http://localhost:%d", config.http_port)
    uvicorn.run(app, host="0.0.0.0", port=config.http_port, log_level="info")


def _run_report(client, config) -> None:
    """Fetch the journal once and print the portfolio report."""
    import asyncio

    from tradebook.analytics.engine import analyze_portfolio
    from tradebook.cli.report import print_report

    trades = asyncio.run(client.fetch_trades())
    analysis = analyze_portfolio(trades, config.analytics_settings())
    print_report(analysis)


if __name__ == "__main__":
    _run_cli()
