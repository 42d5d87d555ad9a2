"""Command line: create, delete and inspect exit nodes.

    exitnode create --provider digitalocean --access-token-file ~/do-token
    exitnode delete --provider digitalocean --id 1234
    exitnode status --provider gce --id "inlets-x|us-central1-a|my-project"

Settings come from exitnode.toml / ~/.exitnode/defaults.toml; flags win.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import sys
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from rich.table import Table

from exitnode.api.model import HostDeleteRequest, ProvisionedHost
from exitnode.bootstrap import generate_auth_token, make_user_data
from exitnode.config import RawConfig, RunConfig, load_config, resolve_provider, resolve_run
from exitnode.core.exceptions import ExitNodeError, ProvisioningCancelled
from exitnode.lifecycle import LifecycleDriver, install_signal_handlers
from exitnode.observability.logger import logger
from exitnode.providers.defaults import describe
from exitnode.providers.registry import AnyProviderConfig, create_provider

console = Console()

# CLI flag -> config field, per provider type.
CREDENTIAL_FIELDS: dict[str, dict[str, str]] = {
    "digitalocean": {"access_token": "token", "access_token_file": "token_file"},
    "civo": {"access_token": "api_key", "access_token_file": "api_key_file"},
    "equinix": {"access_token": "token", "access_token_file": "token_file", "project_id": "project_id"},
    "hetzner": {"access_token": "token", "access_token_file": "token_file"},
    "vultr": {"access_token": "api_key", "access_token_file": "api_key_file"},
    "linode": {"access_token": "token", "access_token_file": "token_file"},
    "scaleway": {
        "access_token": "access_key",
        "secret_key": "secret_key",
        "secret_key_file": "secret_key_file",
        "organisation_id": "organization_id",
        "zone": "zone",
    },
    "ec2": {
        "access_token": "access_key",
        "access_token_file": "access_key_file",
        "secret_key": "secret_key",
        "secret_key_file": "secret_key_file",
        "region": "region",
    },
    "gce": {"access_token_file": "credentials_file", "project_id": "project", "zone": "zone"},
    "azure": {"access_token_file": "auth_file", "subscription_id": "subscription_id"},
    "ovh": {
        "access_token": "application_key",
        "secret_key": "application_secret",
        "secret_key_file": "application_secret_file",
        "consumer_key": "consumer_key",
        "project_id": "project_id",
    },
}


# =============================================================================
# Arguments
# =============================================================================


def _common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-p", "--provider", default=None, help="Provider key or [providers.<name>] table")
    parser.add_argument("--config", type=Path, default=None, help="Extra TOML config file")
    parser.add_argument("-r", "--region", default=None)
    parser.add_argument("-z", "--zone", default=None)
    parser.add_argument("-a", "--access-token", default=None, help="API token or access key")
    parser.add_argument("-f", "--access-token-file", default=None, help="File holding the token or credentials")
    parser.add_argument("--secret-key", default=None)
    parser.add_argument("--secret-key-file", default=None)
    parser.add_argument("--consumer-key", default=None, help="OVH consumer key")
    parser.add_argument("--project-id", default=None, help="GCE/Equinix/OVH project")
    parser.add_argument("--subscription-id", default=None, help="Azure subscription")
    parser.add_argument("--organisation-id", default=None, help="Scaleway organisation/project")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")


def _key_value(text: str) -> tuple[str, str]:
    key, sep, value = text.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected key=value, got {text!r}")
    return key, value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="exitnode", description="Provision tunnel exit-node VMs")
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="Create an exit node and wait for its IP")
    _common(create)
    create.add_argument("-n", "--name", default=None)
    create.add_argument("--plan", default=None)
    create.add_argument("--os", dest="os_image", default=None)
    create.add_argument("--poll", type=float, default=None, help="Seconds between status checks")
    create.add_argument("--max-attempts", type=int, default=None)
    create.add_argument("--control-port", type=int, default=None)
    create.add_argument("--pro", action="store_true", default=None, help="Install the pro tunnel server")
    create.add_argument("--rm", action="store_true", help="Delete the host on Control+C")
    create.add_argument("--tag", type=_key_value, action="append", default=[], help="Extra host tag key=value")

    delete = commands.add_parser("delete", help="Delete an exit node by ID or IP")
    _common(delete)
    target = delete.add_mutually_exclusive_group(required=True)
    target.add_argument("-i", "--id", default="")
    target.add_argument("--ip", default="")

    status = commands.add_parser("status", help="Show an exit node's status")
    _common(status)
    status.add_argument("-i", "--id", required=True)

    return parser


# =============================================================================
# Wiring
# =============================================================================


def _provider_config(args: argparse.Namespace, raw: RawConfig, name: str) -> AnyProviderConfig:
    config = resolve_provider(name, raw)
    mapping = CREDENTIAL_FIELDS.get(config.type, {})
    overrides = {
        field: getattr(args, flag)
        for flag, field in mapping.items()
        if getattr(args, flag, None)
    }
    return dataclasses.replace(config, **overrides) if overrides else config


def _provider_name(args: argparse.Namespace, raw: RawConfig) -> str:
    return args.provider or raw.get("run", {}).get("provider") or RunConfig().provider


def _host_tags(run: RunConfig, args: argparse.Namespace) -> dict[str, str]:
    tags = dict(run.tags)
    tags["control_port"] = str(run.control_port)
    if run.pro:
        tags["pro"] = "true"
    if args.rm:
        tags["tmp"] = "true"
    if args.project_id:
        tags["project_id"] = args.project_id
    tags.update(dict(args.tag))
    return tags


def _summary(provider: str, host: ProvisionedHost, token: str, run: RunConfig) -> Table:
    table = Table(show_header=False, box=None)
    table.add_row("[bold]IP[/]", host.ip)
    table.add_row("[bold]ID[/]", host.id)
    table.add_row("[bold]Auth token[/]", token)
    if run.pro:
        table.add_row("[bold]Connect[/]", f"inlets-pro client --url wss://{host.ip}:8123/connect --token {token}")
    else:
        table.add_row(
            "[bold]Connect[/]",
            f"inlets client --remote ws://{host.ip}:{run.control_port} --token {token}",
        )
    table.add_row("[bold]Delete[/]", f'exitnode delete --provider {provider} --id "{host.id}"')
    return table


# =============================================================================
# Commands
# =============================================================================


async def _create(args: argparse.Namespace, raw: RawConfig) -> int:
    name = _provider_name(args, raw)
    config = _provider_config(args, raw, name)
    run = resolve_run(
        raw,
        provider=name,
        name=args.name,
        region=args.region,
        zone=args.zone,
        plan=args.plan,
        os_image=args.os_image,
        control_port=args.control_port,
        pro=args.pro,
        poll_interval=args.poll,
        max_attempts=args.max_attempts,
        delete_on_cancel=True if args.rm else None,
    )

    token = generate_auth_token()
    host = describe(
        config.type,
        name=run.name,
        region=run.region,
        zone=run.zone,
        plan=run.plan,
        os_image=run.os_image,
        boot_script=make_user_data(token, run.control_port, pro=run.pro),
        tags=_host_tags(run, args),
    )

    cancel = asyncio.Event()
    install_signal_handlers(cancel)
    provider = await create_provider(config)
    try:
        driver = LifecycleDriver(provider, run.lifecycle)
        active = await driver.provision(host, cancel)
        console.print(_summary(name, active, token, run))
        if args.rm:
            console.print("[yellow]Press Control+C to delete the exit node.[/]")
            await driver.hold(active, cancel)
    except ProvisioningCancelled as e:
        console.print(f"[yellow]Cancelled.[/] Host {e.host_id} {'deleted' if e.deleted else 'left running'}.")
        return 1
    finally:
        await provider.close()
    return 0


async def _delete(args: argparse.Namespace, raw: RawConfig) -> int:
    name = _provider_name(args, raw)
    request = HostDeleteRequest(
        id=args.id,
        ip=args.ip,
        project_id=args.project_id or "",
        zone=args.zone or "",
        region=args.region or "",
    )
    provider = await create_provider(_provider_config(args, raw, name))
    try:
        await LifecycleDriver(provider).delete(request)
    finally:
        await provider.close()
    console.print(f"[green]Deleted[/] {request.id or request.ip}")
    return 0


async def _status(args: argparse.Namespace, raw: RawConfig) -> int:
    name = _provider_name(args, raw)
    provider = await create_provider(_provider_config(args, raw, name))
    try:
        host = await provider.status(args.id)
    finally:
        await provider.close()
    console.print(f"{host.id}\t{host.status}\t{host.ip or '-'}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logger.remove()
    logger.add(level="DEBUG" if args.verbose else "INFO")
    if args.log_file:
        logger.add(args.log_file, level="DEBUG")

    try:
        raw = load_config(explicit_path=args.config)
        match args.command:
            case "create":
                return asyncio.run(_create(args, raw))
            case "delete":
                return asyncio.run(_delete(args, raw))
            case "status":
                return asyncio.run(_status(args, raw))
            case _:
                raise AssertionError(args.command)
    except ExitNodeError as e:
        console.print(f"[bold red]Error:[/] {e}")
        return 1


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
