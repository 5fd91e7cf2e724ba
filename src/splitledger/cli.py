"""Click CLI entrypoint for Splitledger."""

import json
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from . import __version__, config, ledger, templates
from .errors import LedgerError, NotFoundError
from .models import SplitType
from .service import LedgerService


class ConsoleNotifier:
    """Notifier that echoes each message, addressed by the recipient's name."""

    def __init__(self, names: Callable[[], dict[str, str]]):
        self._names = names

    def __call__(self, user_id: str, message: str) -> None:
        name = self._names().get(user_id, user_id)
        click.echo(templates.NOTIFICATION.format(name=name, message=message))


def _build_service(currency: str, quiet: bool) -> LedgerService:
    service = LedgerService(currency=currency)
    if not quiet:
        service.add_notifier(ConsoleNotifier(service.user_names))
    return service


def _echo_group(service: LedgerService, group_id: str) -> None:
    group = service.get_group(group_id)
    click.echo(
        templates.format_group_balances(
            group.name, group.balances(), service.currency, service.user_names()
        )
    )


def _echo_user(service: LedgerService, user_id: str) -> None:
    summary = service.get_user_balances(user_id)
    group_names = {group.id: group.name for group in service.list_groups()}
    click.echo(
        templates.format_user_summary(
            summary, service.currency, service.user_names(), group_names
        )
    )


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default=None, help="Log level (default: SPLITLEDGER_LOG_LEVEL or WARNING)")
@click.option("--currency", default=None, help="Display currency (default: SPLITLEDGER_CURRENCY or INR)")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, currency: str | None) -> None:
    """Splitledger - Group expense ledger with debt simplification."""
    config.configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["currency"] = (currency or config.get_currency()).upper()


@cli.command()
@click.option("--quiet", is_flag=True, help="Do not print member notifications")
@click.pass_context
def demo(ctx: click.Context, quiet: bool) -> None:
    """Run the hostel-expenses walkthrough against a fresh ledger."""
    service = _build_service(ctx.obj["currency"], quiet)

    click.echo("=== Creating users ===")
    aditya = service.create_user("Aditya", "aditya@gmail.com")
    rohit = service.create_user("Rohit", "rohit@gmail.com")
    manish = service.create_user("Manish", "manish@gmail.com")
    saurav = service.create_user("Saurav", "saurav@gmail.com")
    for user in (aditya, rohit, manish, saurav):
        click.echo(f"User created: {user.name} (ID: {user.id})")

    click.echo("\n=== Creating group ===")
    hostel = service.create_group("Hostel Expenses")
    for user in (aditya, rohit, manish, saurav):
        service.add_user_to_group(user.id, hostel.id)

    click.echo("\n=== Adding expenses ===")
    everyone = [aditya.id, rohit.id, manish.id, saurav.id]
    service.add_expense_to_group(hostel.id, "Lunch", 800, aditya.id, everyone, SplitType.EQUAL)
    service.add_expense_to_group(
        hostel.id,
        "Dinner",
        700,
        manish.id,
        [aditya.id, manish.id, saurav.id],
        SplitType.EXACT,
        [200, 300, 200],
    )
    _echo_group(service, hostel.id)

    click.echo("\n=== Simplifying debts ===")
    plan = ledger.settlement_plan(service.get_group_balances(hostel.id))
    click.echo(templates.format_debts_list(plan, service.currency, service.user_names()))
    service.simplify_group_debts(hostel.id)
    _echo_group(service, hostel.id)

    click.echo("\n=== Individual expense ===")
    service.add_individual_expense("Coffee", 40, rohit.id, saurav.id, SplitType.EQUAL)
    for user in (aditya, rohit, manish, saurav):
        _echo_user(service, user.id)

    click.echo(f"\n=== Removing {rohit.name} ===")
    try:
        service.remove_user_from_group(rohit.id, hostel.id)
    except LedgerError as e:
        click.echo(templates.ERROR_LEDGER.format(kind=e.kind, message=e.message))

    click.echo(f"\n=== Settling {rohit.name}'s debts ===")
    for debtor, creditor, amount in ledger.debts_from_graph(service.get_group_balances(hostel.id)):
        if debtor == rohit.id:
            service.settle_payment_in_group(hostel.id, debtor, creditor, amount)

    service.remove_user_from_group(rohit.id, hostel.id)
    click.echo(f"{rohit.name} successfully left {hostel.name}")
    _echo_group(service, hostel.id)


# Handlers receive the service, the script-name -> id map, and the step dict
ScriptHandler = Callable[[LedgerService, dict[str, str], dict[str, Any]], None]


def _ref(refs: dict[str, str], step: dict[str, Any], field: str) -> str:
    name = step.get(field)
    if name not in refs:
        raise NotFoundError(f"Unknown reference {field}={name!r}")
    return refs[name]


def _ref_list(refs: dict[str, str], step: dict[str, Any], field: str) -> list[str]:
    names = step[field]
    for name in names:
        if name not in refs:
            raise NotFoundError(f"Unknown reference {field}={name!r}")
    return [refs[name] for name in names]


def _op_create_user(service: LedgerService, refs: dict[str, str], step: dict[str, Any]) -> None:
    user = service.create_user(step["name"], step.get("email", ""))
    refs[step.get("ref", step["name"])] = user.id


def _op_create_group(service: LedgerService, refs: dict[str, str], step: dict[str, Any]) -> None:
    group = service.create_group(step["name"])
    refs[step.get("ref", step["name"])] = group.id


def _op_add_member(service: LedgerService, refs: dict[str, str], step: dict[str, Any]) -> None:
    service.add_user_to_group(_ref(refs, step, "user"), _ref(refs, step, "group"))


def _op_remove_member(service: LedgerService, refs: dict[str, str], step: dict[str, Any]) -> None:
    service.remove_user_from_group(_ref(refs, step, "user"), _ref(refs, step, "group"))


def _op_add_expense(service: LedgerService, refs: dict[str, str], step: dict[str, Any]) -> None:
    service.add_expense_to_group(
        _ref(refs, step, "group"),
        step.get("description", ""),
        str(step["amount"]),
        _ref(refs, step, "paid_by"),
        _ref_list(refs, step, "participants"),
        step.get("split", "equal"),
        [str(v) for v in step["values"]] if "values" in step else None,
    )


def _op_settle(service: LedgerService, refs: dict[str, str], step: dict[str, Any]) -> None:
    service.settle_payment_in_group(
        _ref(refs, step, "group"),
        _ref(refs, step, "from"),
        _ref(refs, step, "to"),
        str(step["amount"]),
    )


def _op_simplify(service: LedgerService, refs: dict[str, str], step: dict[str, Any]) -> None:
    service.simplify_group_debts(_ref(refs, step, "group"))


def _op_individual_expense(
    service: LedgerService, refs: dict[str, str], step: dict[str, Any]
) -> None:
    service.add_individual_expense(
        step.get("description", ""),
        str(step["amount"]),
        _ref(refs, step, "paid_by"),
        _ref(refs, step, "to"),
        step.get("split", "equal"),
        [str(v) for v in step["values"]] if "values" in step else None,
    )


def _op_settle_individual(
    service: LedgerService, refs: dict[str, str], step: dict[str, Any]
) -> None:
    service.settle_individual_payment(
        _ref(refs, step, "from"), _ref(refs, step, "to"), str(step["amount"])
    )


def _op_balances(service: LedgerService, refs: dict[str, str], step: dict[str, Any]) -> None:
    _echo_group(service, _ref(refs, step, "group"))


def _op_user_balances(service: LedgerService, refs: dict[str, str], step: dict[str, Any]) -> None:
    _echo_user(service, _ref(refs, step, "user"))


SCRIPT_OPERATIONS: dict[str, ScriptHandler] = {
    "create_user": _op_create_user,
    "create_group": _op_create_group,
    "add_member": _op_add_member,
    "remove_member": _op_remove_member,
    "add_expense": _op_add_expense,
    "settle": _op_settle,
    "simplify": _op_simplify,
    "individual_expense": _op_individual_expense,
    "settle_individual": _op_settle_individual,
    "balances": _op_balances,
    "user_balances": _op_user_balances,
}


@cli.command()
@click.argument("script", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--quiet", is_flag=True, help="Do not print member notifications")
@click.option("--keep-going", is_flag=True, help="Report failed steps and continue")
@click.pass_context
def run(ctx: click.Context, script: Path, quiet: bool, keep_going: bool) -> None:
    """
    Run a JSON script of ledger operations against a fresh ledger.

    SCRIPT is a JSON list of steps such as
    {"op": "add_expense", "group": "trip", "paid_by": "a", ...}.
    Users and groups are referenced by their script names.
    """
    try:
        with open(script, encoding="utf-8") as f:
            steps = json.load(f)
    except json.JSONDecodeError as e:
        click.echo(templates.ERROR_SCRIPT.format(step=0, message=f"invalid JSON: {e}"))
        sys.exit(1)

    if not isinstance(steps, list):
        click.echo(templates.ERROR_SCRIPT.format(step=0, message="script must be a JSON list"))
        sys.exit(1)

    service = _build_service(ctx.obj["currency"], quiet)
    refs: dict[str, str] = {}
    failed = 0

    for index, step in enumerate(steps, start=1):
        op = step.get("op") if isinstance(step, dict) else None
        handler = SCRIPT_OPERATIONS.get(op) if op else None
        if handler is None:
            click.echo(templates.ERROR_SCRIPT.format(step=index, message=f"unknown op {op!r}"))
            sys.exit(1)
        try:
            handler(service, refs, step)
        except KeyError as e:
            click.echo(templates.ERROR_SCRIPT.format(step=index, message=f"missing field {e}"))
            sys.exit(1)
        except LedgerError as e:
            click.echo(templates.ERROR_SCRIPT.format(step=index, message=f"{e.kind}: {e.message}"))
            if not keep_going:
                sys.exit(1)
            failed += 1

    if failed:
        sys.exit(1)


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
