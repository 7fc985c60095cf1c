"""CLI for wrap-cycler - run wrap/unwrap cycles across your wallets from the terminal."""

from __future__ import annotations

import asyncio
import logging
import random
from pathlib import Path
from typing import NoReturn, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from wrap_cycler.config import (
    RunConfig,
    config_for_chain,
    default_config_path,
    default_keystore_dir,
    load_config,
    save_config,
)
from wrap_cycler.errors import CredentialError
from wrap_cycler.wallet.chains import DEFAULT_CHAIN, list_chain_names
from wrap_cycler.wallet.credentials import (
    WalletCredential,
    credentials_from_keys,
    load_env_credentials,
    write_env_file,
)

app = typer.Typer(
    name="wrap-cycler",
    help="Automate wrap/unwrap cycles of a chain's native asset across multiple wallets.",
    no_args_is_help=True,
)
console = Console()

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        console.print(f"wrap-cycler {version('wrap-cycler')}")
        raise typer.Exit()


@app.callback()
def main(
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
        envvar="WRAP_CYCLER_LOG_LEVEL",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Automate wrap/unwrap cycles of a chain's native asset across multiple wallets."""
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise typer.BadParameter(f"Unknown log level '{log_level}'", param_hint="--log-level")
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _fail(message: str) -> NoReturn:
    console.print(f"[red]{escape(message)}[/red]")
    raise typer.Exit(1)


def _load_run_config(config_path: Optional[Path], **overrides: object) -> RunConfig:
    path = config_path or default_config_path()
    try:
        if path.exists():
            cfg = load_config(path)
        elif config_path is not None:
            raise FileNotFoundError(f"Config file not found: {path}")
        else:
            console.print(
                f"[dim]No config at {path}; using {DEFAULT_CHAIN} defaults. "
                f"Run 'wrap-cycler init' to customise.[/dim]"
            )
            cfg = RunConfig()
        return cfg.with_overrides(**overrides)
    except (FileNotFoundError, ValidationError) as exc:
        _fail(f"Invalid configuration: {exc}")


# ------------------------------------------------------------------
# Credential collection
# ------------------------------------------------------------------


def _prompt_wallets() -> list[WalletCredential]:
    """Interactively collect wallet addresses and private keys."""
    console.print("[bold]=== Multi-wallet Setup ===[/bold]")
    count = 0
    while count <= 0:
        raw = console.input("How many wallets do you want to configure? (e.g. 2): ").strip()
        count = int(raw) if raw.isdigit() else 0

    addresses: list[str] = []
    keys: list[str] = []
    for i in range(count):
        console.print(f"\n[bold]Wallet #{i + 1}:[/bold]")
        addresses.append(console.input("  Public Address (0x...): ").strip())
        keys.append(console.input("  Private Key: ", password=True).strip())
    return credentials_from_keys(keys, addresses)


def _setup_env(env_file: Path) -> list[WalletCredential]:
    credentials = _prompt_wallets()
    write_env_file(env_file, credentials)
    console.print(f"\n[green]{env_file} written with {len(credentials)} wallet(s).[/green]\n")
    return credentials


def _resolve_credentials(
    env_file: Path,
    keystore: Optional[Path],
    *,
    assume_yes: bool,
) -> list[WalletCredential]:
    from wrap_cycler.wallet.keystore import load_keystore_credentials

    try:
        if keystore is not None:
            password = console.input("[bold]Keystore password: [/bold]", password=True)
            return load_keystore_credentials(keystore, password)

        if not env_file.exists():
            try:
                return load_env_credentials(env_file)
            except CredentialError:
                return _setup_env(env_file)

        if not assume_yes:
            answer = console.input(f"{env_file} already exists. Use previous wallets? (y/n): ")
            if answer.strip().lower().startswith("n"):
                return _setup_env(env_file)
            console.print(f"Using existing {env_file}...\n")
        return load_env_credentials(env_file)
    except CredentialError as exc:
        _fail(str(exc))


# ------------------------------------------------------------------
# init / setup
# ------------------------------------------------------------------


@app.command()
def init(
    chain: str = typer.Option(DEFAULT_CHAIN, "--chain", "-c", help=f"Chain preset ({', '.join(list_chain_names())})"),
    rpc_url: Optional[str] = typer.Option(None, "--rpc-url", help="Override the preset RPC endpoint"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config"),
):
    """Write .wrap-cycler/config.yaml from a chain preset."""
    path = default_config_path()
    if path.exists() and not force:
        _fail(f"{path} already exists. Use --force to overwrite.")

    try:
        cfg = config_for_chain(chain, rpc_url=rpc_url)
    except KeyError as exc:
        _fail(str(exc.args[0]))
    save_config(cfg, path)

    console.print(Panel(
        f"[bold green]Config written![/bold green]\n\n"
        f"File: [cyan]{path}[/cyan]\n"
        f"Chain: {cfg.chain} (id {cfg.chain_id})\n"
        f"Contract: {cfg.contract_address} ({cfg.wrapped_symbol})\n\n"
        f"[dim]Edit the file to tune cycles, amounts, fees and delays.\n"
        f"Values like ${{PLUME_RPC_URL}} are read from the environment.[/dim]",
        title="wrap-cycler",
    ))


@app.command()
def setup(
    env_file: Path = typer.Option(Path(".env"), "--env-file", "-e", help="Where to write wallet credentials"),
):
    """Interactively enter wallet addresses and private keys into a .env file."""
    if env_file.exists():
        typer.confirm(f"{env_file} already exists. Overwrite it?", abort=True)
    try:
        _setup_env(env_file)
    except CredentialError as exc:
        _fail(str(exc))


# ------------------------------------------------------------------
# run
# ------------------------------------------------------------------


def _print_report(report, cfg: RunConfig) -> None:
    table = Table(title="Run Summary")
    table.add_column("Wallet", style="cyan")
    table.add_column("Address")
    table.add_column("Cycles", justify="right")
    table.add_column("Wraps", justify="right")
    table.add_column("Unwraps", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column(f"Final {cfg.native_symbol}", justify="right")
    table.add_column(f"Final {cfg.wrapped_symbol}", justify="right")
    table.add_column("Status")

    for wallet in report.wallets:
        if wallet.error:
            status = f"[red]failed: {escape(wallet.error)}[/red]"
        elif wallet.stopped_early:
            status = "[yellow]stopped (insufficient balance)[/yellow]"
        else:
            status = "[green]OK[/green]"
        final = wallet.final
        table.add_row(
            f"#{wallet.index + 1}",
            wallet.address,
            str(wallet.cycles_attempted),
            str(wallet.wraps),
            str(wallet.unwraps),
            str(wallet.skipped_unwraps),
            str(final.native) if final else "-",
            str(final.wrapped) if final else "-",
            status,
        )
    console.print(table)


@app.command()
def run(
    config: Optional[Path] = typer.Option(None, "--config", help="Config file (default: .wrap-cycler/config.yaml)"),
    env_file: Path = typer.Option(Path(".env"), "--env-file", "-e", help="Wallet credentials file"),
    keystore: Optional[Path] = typer.Option(None, "--keystore", "-k", help="Load wallets from an encrypted keystore directory (run in import order)"),
    cycles: Optional[int] = typer.Option(None, "--cycles", "-n", help="Cycles per wallet (default: from config)"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for amount and delay randomness"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Reuse existing wallets without asking"),
):
    """Run wrap/unwrap cycles for every configured wallet, one after another."""
    from wrap_cycler.core.fleet import run_fleet

    cfg = _load_run_config(config, cycles=cycles)
    credentials = _resolve_credentials(env_file, keystore, assume_yes=yes)

    console.print(Panel(
        f"[bold]{len(credentials)}[/bold] wallet(s) on {cfg.chain} (chain id {cfg.chain_id})\n"
        f"{cfg.cycles} cycles each, {cfg.min_amount}-{cfg.max_amount} {cfg.native_symbol} per transaction\n"
        f"Pacing: {cfg.delay_min_ms / 1000}-{cfg.delay_max_ms / 1000}s\n\n"
        f"[dim]Press Ctrl+C to abort.[/dim]",
        title="Wrap/Unwrap Run",
        border_style="green",
    ))

    rng = random.Random(seed) if seed is not None else None
    code, report = asyncio.run(run_fleet(cfg, credentials, rng=rng))

    if report is not None:
        _print_report(report, cfg)
    if code == 0:
        console.print("[green]Run completed for all wallets.[/green]")
    else:
        console.print("[red]Run failed.[/red]")
    raise typer.Exit(code)


# ------------------------------------------------------------------
# balances
# ------------------------------------------------------------------


@app.command()
def balances(
    config: Optional[Path] = typer.Option(None, "--config", help="Config file (default: .wrap-cycler/config.yaml)"),
    env_file: Path = typer.Option(Path(".env"), "--env-file", "-e", help="Wallet credentials file"),
    keystore: Optional[Path] = typer.Option(None, "--keystore", "-k", help="Load wallets from an encrypted keystore directory"),
):
    """Show native and wrapped balances for every configured wallet."""
    from wrap_cycler.errors import ProviderError
    from wrap_cycler.wallet.provider import ChainClient, create_web3

    cfg = _load_run_config(config)
    credentials = _resolve_credentials(env_file, keystore, assume_yes=True)

    async def _balances():
        w3 = create_web3(cfg)
        client = ChainClient(w3, cfg)
        rows = []
        try:
            for credential in credentials:
                try:
                    rows.append((credential.address, await client.balances(credential.address), None))
                except ProviderError as exc:
                    rows.append((credential.address, None, str(exc)))
        finally:
            await w3.provider.disconnect()
        return rows

    rows = asyncio.run(_balances())

    table = Table(title=f"Wallet Balances ({cfg.chain})")
    table.add_column("Wallet", style="cyan")
    table.add_column("Address")
    table.add_column(cfg.native_symbol, justify="right")
    table.add_column(cfg.wrapped_symbol, justify="right")
    table.add_column("Status", style="dim")
    for i, (address, result, error) in enumerate(rows):
        table.add_row(
            f"#{i + 1}",
            address,
            str(result.native) if result else "-",
            str(result.wrapped) if result else "-",
            f"[red]{escape(error)}[/red]" if error else "[green]OK[/green]",
        )
    console.print(table)


# ------------------------------------------------------------------
# keystore sub-commands
# ------------------------------------------------------------------

keystore_app = typer.Typer(
    name="keystore",
    help="Manage encrypted wallet keystores.",
    no_args_is_help=True,
)
app.add_typer(keystore_app, name="keystore")


@keystore_app.command("import")
def keystore_import(
    directory: Optional[Path] = typer.Option(None, "--dir", "-d", help="Keystore directory (default: .wrap-cycler/keystore)"),
):
    """Encrypt a private key into the keystore directory."""
    from wrap_cycler.wallet.keystore import import_key

    keystore_dir = directory or default_keystore_dir()
    private_key = console.input("[bold]Private key: [/bold]", password=True).strip()
    password = console.input("[bold]Set keystore password: [/bold]", password=True)
    confirm = console.input("[bold]Confirm password: [/bold]", password=True)
    if password != confirm:
        _fail("Passwords do not match.")

    try:
        address = import_key(keystore_dir, private_key, password)
    except (CredentialError, FileExistsError) as exc:
        _fail(str(exc))

    console.print(Panel(
        f"[bold green]Wallet imported![/bold green]\n\n"
        f"Address: [cyan]{address}[/cyan]\n\n"
        f"[dim]Use the same password for every wallet in {keystore_dir}\n"
        f"so 'wrap-cycler run --keystore {keystore_dir}' can unlock them all.[/dim]",
        title="Keystore",
    ))


@keystore_app.command("list")
def keystore_list(
    directory: Optional[Path] = typer.Option(None, "--dir", "-d", help="Keystore directory (default: .wrap-cycler/keystore)"),
):
    """List wallet addresses stored in the keystore directory."""
    from wrap_cycler.wallet.keystore import list_addresses

    keystore_dir = directory or default_keystore_dir()
    addresses = list_addresses(keystore_dir)
    if not addresses:
        console.print(f"[yellow]No keystores found in {keystore_dir}.[/yellow]")
        raise typer.Exit(1)

    table = Table(title="Keystore Wallets")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Address")
    for i, address in enumerate(addresses):
        table.add_row(str(i + 1), address)
    console.print(table)
