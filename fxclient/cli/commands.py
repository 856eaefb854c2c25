"""``flask fx`` commands for operating the FX client from a shell."""

from __future__ import annotations

from datetime import datetime

import click
from flask.cli import AppGroup

from fxclient.fx.errors import FXError
from fxclient.services import get_fx

fx_cli = AppGroup("fx", help="Exchange rate client commands.")


def _codes(raw: str | None) -> list[str] | None:
    if not raw:
        return None
    return [code.strip() for code in raw.split(",") if code.strip()]


@fx_cli.command("latest")
@click.option("--currencies", default=None, help="Comma separated ISO codes, e.g. EUR,DOP")
def latest(currencies: str | None) -> None:
    """Fetch the latest rates and print them."""

    fx = get_fx()
    snapshot = fx.run(fx.service.fetch_latest_rates(_codes(currencies)))
    if snapshot is None:
        raise click.ClickException(str(fx.service.last_error or "Latest rates unavailable."))

    click.echo(f"Base {snapshot.base} ({snapshot.source}) at {snapshot.fetched_at.isoformat()}")
    for code, rate in sorted(snapshot.rates.items()):
        click.echo(f"  {code}: {rate}")


@fx_cli.command("convert")
@click.argument("amount", type=float)
@click.argument("from_currency")
@click.argument("to_currency")
@click.option("--date", "on", default=None, type=click.DateTime(formats=["%Y-%m-%d"]))
def convert(amount: float, from_currency: str, to_currency: str, on: datetime | None) -> None:
    """Convert AMOUNT from FROM_CURRENCY to TO_CURRENCY."""

    fx = get_fx()
    try:
        result = fx.run(
            fx.engine.convert(amount, from_currency, to_currency, on.date() if on else None)
        )
    except FXError as exc:
        raise click.ClickException(exc.message) from exc

    click.echo(
        f"{result.original_amount} {result.from_currency} = "
        f"{result.converted_amount} {result.to_currency} "
        f"(rate {result.rate_used}, source {result.source})"
    )


@fx_cli.command("symbols")
def symbols() -> None:
    """List supported currency codes."""

    fx = get_fx()
    try:
        names = fx.run(fx.service.fetch_symbols())
    except FXError as exc:
        raise click.ClickException(exc.message) from exc

    for code, name in sorted(names.items()):
        click.echo(f"{code}\t{name}")


@fx_cli.command("clear-cache")
def clear_cache() -> None:
    """Remove every cached response from memory and disk."""

    fx = get_fx()
    fx.run(fx.service.clear_cache())
    click.echo("FX cache cleared.")


@fx_cli.command("sweep-cache")
def sweep_cache() -> None:
    """Remove expired cache entries."""

    fx = get_fx()
    removed = fx.run(fx.service.clear_expired_cache())
    click.echo(f"Removed {removed} expired cache entries.")


@fx_cli.command("reset-circuit")
def reset_circuit() -> None:
    """Close the circuit breaker after a credential fix."""

    fx = get_fx()
    fx.call(fx.service.reset_circuit_breaker)
    click.echo("Circuit breaker reset.")


@fx_cli.command("health")
def health() -> None:
    """Probe the upstream health endpoint."""

    fx = get_fx()
    if not fx.run(fx.service.check_health()):
        raise click.ClickException("FX API is unreachable.")
    click.echo("FX API is healthy.")
