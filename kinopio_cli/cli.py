from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path

import click

from kinopio_cli.client import APIError, KinopioClient
from kinopio_cli.common import now, parse_duration
from kinopio_cli.config import Config, ConfigError, PersistenceError, load_config, save_config
from kinopio_cli.render import render_schedule, render_table
from kinopio_cli.scheduler import NoTopicsError, Scheduler

_DOMAIN_ERRORS = (APIError, ConfigError, PersistenceError, NoTopicsError, ValueError)


class _AliasedGroup(click.Group):
    """Group that also resolves short aliases (`kp i a ...`, `kp rr next`)."""

    def __init__(self, *args, aliases: dict[str, str] | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.aliases = aliases or {}

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        cmd_name = cmd_name.lower()
        return super().get_command(ctx, self.aliases.get(cmd_name, cmd_name))


@contextmanager
def _failing(action: str) -> Iterator[None]:
    try:
        yield
    except _DOMAIN_ERRORS as e:
        raise click.ClickException(f"{action}: {e}") from e


@click.group(
    cls=_AliasedGroup,
    aliases={"i": "inbox", "rr": "roundrobin"},
    invoke_without_command=True,
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file path (defaults to $KINOPIO_CONFIG or ~/.config/kinopio/kinopio.yaml).",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, *, verbose: bool) -> None:
    """Work with Kinopio from the command line."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("help")
@click.pass_context
def help_command(ctx: click.Context) -> None:
    """Print this usage message."""
    click.echo(ctx.parent.get_help() if ctx.parent else ctx.get_help())


def _config(ctx: click.Context) -> Config:
    config_path = None
    if ctx.obj:
        config_path = ctx.obj.get("config_path")
    with _failing("failed to load config"):
        return load_config(config_path)


def _client(conf: Config) -> KinopioClient:
    with _failing("failed to load config"):
        conf.require_credentials()
        return KinopioClient(conf.api_key)


@cli.group("inbox", cls=_AliasedGroup, aliases={"a": "add"})
def inbox_group() -> None:
    """Interact with user inbox."""


@inbox_group.command("add")
@click.argument("name")
@click.pass_context
def inbox_add(ctx: click.Context, name: str) -> None:
    """Add a new card to the inbox."""
    conf = _config(ctx)
    with _client(conf) as client, _failing("failed to add card to inbox"):
        client.add_card_to_inbox(name, conf.inbox_space_id)


@inbox_group.command("view")
@click.pass_context
def inbox_view(ctx: click.Context) -> None:
    """Print the cards in the inbox."""
    conf = _config(ctx)
    with _client(conf) as client, _failing("failed to retrieve inbox"):
        space = client.get_space(conf.inbox_space_id)
    click.echo(render_table(["ID", "CARD NAME"], [(c.id, c.name) for c in space.cards]), nl=False)


@cli.group("space", cls=_AliasedGroup, aliases={"ls": "list"})
def space_group() -> None:
    """Interact with user spaces."""


@space_group.command("list")
@click.pass_context
def space_list(ctx: click.Context) -> None:
    """Print all spaces."""
    conf = _config(ctx)
    with _client(conf) as client, _failing("failed to retrieve user spaces"):
        spaces = client.get_spaces()
    click.echo(render_table(["ID", "NAME"], [(s.id, s.name) for s in spaces]), nl=False)


@space_group.command("view")
@click.argument("space_id")
@click.argument("target", required=False, type=click.Choice(["box"], case_sensitive=False))
@click.argument("box_id", required=False)
@click.pass_context
def space_view(ctx: click.Context, space_id: str, target: str | None, box_id: str | None) -> None:
    """View a space, or the cards inside one of its boxes.

    Examples:

        kp space view <space_id>               # Cards and boxes of a space
        kp space view <space_id> box <box_id>  # Cards inside a box
    """
    if target is not None and box_id is None:
        raise click.UsageError("missing BOX_ID after 'box'")

    conf = _config(ctx)

    if target is None:
        with _client(conf) as client, _failing("failed to retrieve user space"):
            space = client.get_space(space_id)
        click.echo(f"{space.name}\n")
        click.echo(render_table(["ID", "CARD NAME"], [(c.id, c.name) for c in space.cards]))
        click.echo(render_table(["ID", "BOX NAME"], [(b.id, b.name) for b in space.boxes]), nl=False)
        return

    with _client(conf) as client, _failing("failed to retrieve box"):
        cards = client.cards_in_box(space_id, box_id)
    for c in cards:
        click.echo(c.name)


@cli.command("dirs")
@click.pass_context
def dirs(ctx: click.Context) -> None:
    """Print the directories kp relies on."""
    conf = _config(ctx)
    for d in conf.dirs():
        click.echo(str(d))


@cli.command("config")
@click.pass_context
def config_edit(ctx: click.Context) -> None:
    """Open the config file using $EDITOR."""
    conf = _config(ctx)
    click.edit(filename=str(conf.path))


def _parse_time_slice(_ctx: click.Context, _param: click.Parameter, value: str) -> timedelta:
    try:
        slice_ = parse_duration(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e
    if slice_ < timedelta(0):
        raise click.BadParameter("time slice must be >= 0")
    return slice_


@cli.group("roundrobin", cls=_AliasedGroup)
def roundrobin_group() -> None:
    """Round-robin scheduling over the cards of a box."""


@roundrobin_group.command("set")
@click.argument("space_id")
@click.argument("box_id")
@click.option(
    "--time-slice",
    default="0s",
    show_default=True,
    callback=_parse_time_slice,
    help="Minimum time a card stays current, e.g. 25m or 1h30m.",
)
@click.pass_context
def roundrobin_set(ctx: click.Context, space_id: str, box_id: str, *, time_slice: timedelta) -> None:
    """Schedule the cards inside a box."""
    conf = _config(ctx)
    with _client(conf) as client, _failing("failed to retrieve box"):
        cards = client.cards_in_box(space_id, box_id)

    conf.schedule = Scheduler.seed([c.name for c in cards], time_slice=time_slice, now=now())
    with _failing("failed to set round-robin box"):
        save_config(conf)

    if conf.schedule.is_empty:
        click.echo("No cards found in box; schedule is empty.", err=True)


@roundrobin_group.command("next")
@click.pass_context
def roundrobin_next(ctx: click.Context) -> None:
    """Move to the next card once the current one's time slice is up."""
    conf = _config(ctx)
    with _failing("failed to retrieve next topic"):
        topic, advanced = conf.schedule.advance(now())
        if advanced:
            save_config(conf)
    click.echo(topic.name)


@roundrobin_group.command("clear")
@click.pass_context
def roundrobin_clear(ctx: click.Context) -> None:
    """Clear the round-robin state."""
    conf = _config(ctx)
    conf.schedule.clear()
    with _failing("failed to clear scheduler"):
        save_config(conf)


@roundrobin_group.command("status")
@click.pass_context
def roundrobin_status(ctx: click.Context) -> None:
    """Show the scheduled cards and which one is current."""
    conf = _config(ctx)
    if conf.schedule.is_empty:
        click.echo("No topics scheduled.")
        return
    click.echo(render_schedule(conf.schedule, now=now()), nl=False)

