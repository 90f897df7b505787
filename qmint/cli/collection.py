#!/usr/bin/env python3
"""
qMint Collection CLI

Operate a typed token collection whose state lives in a local SQLite store.
Every command loads the stored state, applies one operation and saves the
result.

Usage:
    qmint init [--force]
    qmint status [--json]
    qmint purchase <type_id> [--payment AMOUNT]
    qmint mint <type_id> <recipient> [amount]
    qmint burn <type_id> <amount>
    qmint transfer <recipient> <type_id> <amount> [--from SENDER]
    qmint approve <operator> [--revoke]
    qmint balance <holder> <type_id>
    qmint pause | unpause
    qmint sale open|close
    qmint set-release <timestamp>
    qmint set-royalty <receiver> <basis_points>
    qmint set-base-uri <uri>
    qmint uri [type_id]
    qmint royalty <type_id> <sale_price>
    qmint withdraw [--to ADDRESS]

Global options:
    --config FILE   collection.toml (default: $QMINT_CONFIG or ./collection.toml)
    --caller ADDR   acting account (default: $QMINT_CALLER or the configured owner)
"""

import asyncio
import json
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional

import click

from .. import __version__
from ..collection import TypedTokenCollection
from ..config import CollectionSettings, load_config
from ..exceptions import ConfigurationError, QMintException
from ..logger import get_logger, set_level
from ..storage import CollectionStore

logger = get_logger(__name__)


class DecimalType(click.ParamType):
    """Exact decimal amounts (payments, sale prices)."""

    name = "decimal"

    def convert(self, value, param, ctx):
        if isinstance(value, Decimal):
            return value
        try:
            return Decimal(str(value))
        except InvalidOperation:
            self.fail(f"{value!r} is not a decimal number", param, ctx)


DECIMAL = DecimalType()


def format_timestamp(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _settings(ctx: click.Context) -> CollectionSettings:
    """Load and validate settings once per invocation."""
    obj = ctx.ensure_object(dict)
    if "settings" not in obj:
        try:
            settings = load_config(obj.get("config_path"))
            settings.validate()
        except ConfigurationError as e:
            raise click.ClickException(f"Configuration error: {e}")
        set_level(settings.logging.level)
        obj["settings"] = settings
    return obj["settings"]


def _caller(ctx: click.Context) -> str:
    obj = ctx.ensure_object(dict)
    return obj.get("caller") or _settings(ctx).admin.owner


async def _run_async(
    settings: CollectionSettings,
    operation: Callable[[TypedTokenCollection], Any],
    save: bool,
) -> Any:
    store = await CollectionStore.create(settings.storage.path)
    try:
        state = await store.load()
        if state is None:
            raise click.ClickException(
                f"No collection stored at {settings.storage.path}. Run 'qmint init' first."
            )
        collection = TypedTokenCollection.from_settings(settings)
        collection.restore(state)
        result = operation(collection)
        if save:
            await store.save(collection.snapshot())
        return result
    except (QMintException, ValueError) as e:
        raise click.ClickException(str(e))
    finally:
        await store.close()


def run(ctx: click.Context, operation: Callable[[TypedTokenCollection], Any], save: bool = True) -> Any:
    """Load the stored collection, apply *operation*, persist when *save*."""
    return asyncio.run(_run_async(_settings(ctx), operation, save))


def success(message: str) -> None:
    click.echo(click.style(f"✓ {message}", fg="green"))


@click.group()
@click.version_option(version=__version__, prog_name="qmint")
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to collection.toml",
)
@click.option(
    "--caller",
    envvar="QMINT_CALLER",
    default=None,
    help="Acting account address (default: configured owner)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], caller: Optional[str]):
    """qMint Typed Collection Command Line Interface

    Purchase, mint, burn and transfer typed collectibles, and administer
    the collection's gates, royalty and metadata.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["caller"] = caller


# ═══════════════════════════════════════════════════════════════════════
#  SETUP & STATUS
# ═══════════════════════════════════════════════════════════════════════

@cli.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing collection state")
@click.pass_context
def init_cmd(ctx: click.Context, force: bool):
    """Create the collection state from the configuration.

    Examples:

        qmint --config collection.toml init
    """
    settings = _settings(ctx)

    async def _init():
        store = await CollectionStore.create(settings.storage.path)
        try:
            if await store.load() is not None and not force:
                raise click.ClickException(
                    f"A collection already exists at {settings.storage.path} (use --force to reset)"
                )
            collection = TypedTokenCollection.from_settings(settings)
            await store.save(collection.snapshot())
            return collection
        except QMintException as e:
            raise click.ClickException(str(e))
        finally:
            await store.close()

    collection = asyncio.run(_init())
    success(f"Collection {collection.symbol} initialized")
    click.echo(f"Name:        {collection.name}")
    click.echo(f"Types:       {collection.num_types}")
    click.echo(f"Supply cap:  {collection.supply.max_total_supply} "
               f"({collection.supply.max_mint_per_type} per type)")
    click.echo(f"Unit price:  {collection.unit_price}")
    click.echo(f"Release:     {format_timestamp(collection.release_timestamp)}")
    click.echo(f"Store:       {settings.storage.path}")


@cli.command("status")
@click.option("--json", "as_json", is_flag=True, help="Print the full state as JSON")
@click.pass_context
def status_cmd(ctx: click.Context, as_json: bool):
    """Show gates, supply and configuration of the collection."""
    collection = run(ctx, lambda c: c, save=False)

    if as_json:
        click.echo(json.dumps(collection.to_dict(), indent=2))
        return

    click.echo()
    click.echo(click.style("═══════════════════════════════════════", fg="cyan"))
    click.echo(click.style(f"   {collection.name} ({collection.symbol})", fg="cyan", bold=True))
    click.echo(click.style("═══════════════════════════════════════", fg="cyan"))
    click.echo()

    paused = collection.is_paused()
    sale_open = collection.is_public_sale_open()
    click.echo("Paused:       " + click.style("yes" if paused else "no", fg="red" if paused else "green"))
    click.echo("Public sale:  " + click.style("open" if sale_open else "closed", fg="green" if sale_open else "red"))
    click.echo(f"Release:      {format_timestamp(collection.release_timestamp)} "
               f"({collection.release_state().value})")
    click.echo(f"Unit price:   {collection.unit_price}")
    click.echo(f"Royalty:      {collection.royalty.basis_points} bps → {collection.royalty.receiver}")
    click.echo(f"Contract URI: {collection.contract_uri()}")
    click.echo()
    click.echo(f"Minted {collection.total_minted()} / {collection.supply.max_total_supply}, "
               f"circulating {collection.total_supply()}")
    for type_id in range(collection.num_types):
        minted = collection.minted_by_type(type_id)
        burned = collection.burned_by_type(type_id)
        click.echo(f"  type {type_id}: minted {minted:>4} / {collection.supply.max_mint_per_type}"
                   f"  burned {burned:>4}  circulating {minted - burned:>4}")


# ═══════════════════════════════════════════════════════════════════════
#  ISSUANCE
# ═══════════════════════════════════════════════════════════════════════

@cli.command("purchase")
@click.argument("type_id", type=int)
@click.option("--payment", "-p", type=DECIMAL, default=None, help="Payment (default: unit price)")
@click.pass_context
def purchase_cmd(ctx: click.Context, type_id: int, payment: Optional[Decimal]):
    """Buy one unit of TYPE_ID during the public sale.

    Examples:

        qmint --caller 0x742d...0bEb purchase 3 --payment 0.05
    """
    payer = _caller(ctx)

    def _purchase(c: TypedTokenCollection):
        return c.purchase(type_id, payer, c.unit_price if payment is None else payment)

    run(ctx, _purchase)
    success(f"Purchased 1 of type {type_id} for {payer}")


@cli.command("mint")
@click.argument("type_id", type=int)
@click.argument("recipient")
@click.argument("amount", type=int, default=1)
@click.pass_context
def mint_cmd(ctx: click.Context, type_id: int, recipient: str, amount: int):
    """Mint AMOUNT units of TYPE_ID to RECIPIENT (administrator only)."""
    caller = _caller(ctx)
    run(ctx, lambda c: c.mint(caller, type_id, recipient, amount))
    success(f"Minted {amount} of type {type_id} to {recipient}")


@cli.command("burn")
@click.argument("type_id", type=int)
@click.argument("amount", type=int)
@click.pass_context
def burn_cmd(ctx: click.Context, type_id: int, amount: int):
    """Destroy AMOUNT of the caller's own units of TYPE_ID."""
    caller = _caller(ctx)
    run(ctx, lambda c: c.burn(caller, type_id, amount))
    success(f"Burned {amount} of type {type_id} from {caller}")


# ═══════════════════════════════════════════════════════════════════════
#  TRANSFERS
# ═══════════════════════════════════════════════════════════════════════

@cli.command("transfer")
@click.argument("recipient")
@click.argument("type_id", type=int)
@click.argument("amount", type=int)
@click.option("--from", "sender", default=None, help="Token owner (default: caller)")
@click.pass_context
def transfer_cmd(ctx: click.Context, recipient: str, type_id: int, amount: int, sender: Optional[str]):
    """Transfer AMOUNT of TYPE_ID to RECIPIENT."""
    operator = _caller(ctx)
    owner = sender or operator
    run(ctx, lambda c: c.safe_transfer_from(operator, owner, recipient, type_id, amount))
    success(f"Transferred {amount} of type {type_id}: {owner} → {recipient}")


@cli.command("approve")
@click.argument("operator")
@click.option("--revoke", is_flag=True, help="Revoke instead of grant")
@click.pass_context
def approve_cmd(ctx: click.Context, operator: str, revoke: bool):
    """Grant (or revoke) OPERATOR control over all of the caller's tokens."""
    owner = _caller(ctx)
    run(ctx, lambda c: c.set_approval_for_all(owner, operator, not revoke))
    success(f"Operator {operator} {'revoked' if revoke else 'approved'} for {owner}")


@cli.command("balance")
@click.argument("holder")
@click.argument("type_id", type=int)
@click.pass_context
def balance_cmd(ctx: click.Context, holder: str, type_id: int):
    """Print HOLDER's balance of TYPE_ID."""
    click.echo(run(ctx, lambda c: c.balance_of(holder, type_id), save=False))


# ═══════════════════════════════════════════════════════════════════════
#  ADMINISTRATION
# ═══════════════════════════════════════════════════════════════════════

@cli.command("pause")
@click.pass_context
def pause_cmd(ctx: click.Context):
    """Halt purchases, mints, burns, transfers and approvals."""
    caller = _caller(ctx)
    changed = run(ctx, lambda c: c.pause(caller))
    if changed:
        click.echo(click.style("Collection PAUSED", fg="red", bold=True))
    else:
        click.echo("Collection was already paused")


@cli.command("unpause")
@click.pass_context
def unpause_cmd(ctx: click.Context):
    """Resume normal operation."""
    caller = _caller(ctx)
    changed = run(ctx, lambda c: c.unpause(caller))
    if changed:
        success("Collection unpaused")
    else:
        click.echo("Collection was not paused")


@cli.command("sale")
@click.argument("state", type=click.Choice(["open", "close"]))
@click.pass_context
def sale_cmd(ctx: click.Context, state: str):
    """Open or close the public sale."""
    caller = _caller(ctx)
    run(ctx, lambda c: c.set_public_sale_open(caller, state == "open"))
    success(f"Public sale {'OPEN' if state == 'open' else 'CLOSED'}")


@cli.command("set-release")
@click.argument("timestamp", type=int)
@click.pass_context
def set_release_cmd(ctx: click.Context, timestamp: int):
    """Set the unix time from which transfers are allowed."""
    caller = _caller(ctx)
    run(ctx, lambda c: c.set_release_timestamp(caller, timestamp))
    success(f"Release timestamp set to {timestamp} ({format_timestamp(timestamp)})")


@cli.command("set-royalty")
@click.argument("receiver")
@click.argument("basis_points", type=int)
@click.pass_context
def set_royalty_cmd(ctx: click.Context, receiver: str, basis_points: int):
    """Set the secondary-sale royalty receiver and rate."""
    caller = _caller(ctx)
    run(ctx, lambda c: c.set_royalty(caller, receiver, basis_points))
    success(f"Royalty set to {basis_points} bps → {receiver}")


@cli.command("set-base-uri")
@click.argument("uri")
@click.pass_context
def set_base_uri_cmd(ctx: click.Context, uri: str):
    """Replace the metadata base URI."""
    caller = _caller(ctx)
    run(ctx, lambda c: c.set_base_uri(caller, uri))
    success(f"Base URI set to {uri}")


@cli.command("withdraw")
@click.option("--to", "recipient", default=None, help="Payout address (default: caller)")
@click.pass_context
def withdraw_cmd(ctx: click.Context, recipient: Optional[str]):
    """Release all collected sale proceeds."""
    caller = _caller(ctx)
    amount = run(ctx, lambda c: c.withdraw(caller, recipient))
    success(f"Withdrew {amount} to {recipient or caller}")


# ═══════════════════════════════════════════════════════════════════════
#  METADATA & ROYALTY READS
# ═══════════════════════════════════════════════════════════════════════

@cli.command("uri")
@click.argument("type_id", type=int, required=False)
@click.pass_context
def uri_cmd(ctx: click.Context, type_id: Optional[int]):
    """Print the metadata URI of TYPE_ID, or the contract URI when omitted."""
    if type_id is None:
        click.echo(run(ctx, lambda c: c.contract_uri(), save=False))
    else:
        click.echo(run(ctx, lambda c: c.uri(type_id), save=False))


@cli.command("royalty")
@click.argument("type_id", type=int)
@click.argument("sale_price", type=DECIMAL)
@click.pass_context
def royalty_cmd(ctx: click.Context, type_id: int, sale_price: Decimal):
    """Print the royalty receiver and amount owed on a sale."""
    receiver, amount = run(ctx, lambda c: c.royalty_info(type_id, sale_price), save=False)
    click.echo(f"Receiver: {receiver}")
    click.echo(f"Amount:   {amount}")


if __name__ == "__main__":
    cli()
