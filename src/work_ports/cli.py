"""CLI commands for work-ports."""

import click


def list_options(f):
    """Options shared by `list` and the bare `work-ports` invocation."""
    options = [
        click.option("--port", "-p", type=click.IntRange(1, 65535), help="Only show this port"),
        click.option("--process", "-n", help="Only show processes whose name contains this text"),
        click.option("--all", "-a", "show_all", is_flag=True, help="Include non-dev ports"),
        click.option(
            "--sort",
            type=click.Choice(["default", "recent"]),
            default=None,
            help="Order by score/port (default) or newest process first (recent)",
        ),
        click.option(
            "--limit", "-l", type=click.IntRange(min=0), default=None, help="Max rows per tier"
        ),
        click.option("--format", "fmt", type=click.Choice(["table", "json"]), default="table"),
        click.option(
            "--verbose", "-v", is_flag=True, help="Record debug events in the log file"
        ),
    ]
    # Applied innermost first so --help lists them in declaration order
    for option in reversed(options):
        f = option(f)
    return f


@click.group(invoke_without_command=True)
@click.version_option(package_name="work-ports")
@list_options
@click.pass_context
def main(ctx, **list_kwargs) -> None:
    """Show which local processes own which listening ports.

    Without a subcommand this runs `list`, so `work-ports -a -p 3000` works.
    """
    if ctx.invoked_subcommand is None:
        ctx.invoke(list_ports, **list_kwargs)


@main.command("list")
@list_options
def list_ports(
    port: int | None = None,
    process: str | None = None,
    show_all: bool = False,
    sort: str | None = None,
    limit: int | None = None,
    fmt: str = "table",
    verbose: bool = False,
) -> None:
    """List listening ports grouped into tiers."""
    from rich.console import Console

    from work_ports import logging as wp_logging
    from work_ports.config import Config
    from work_ports.engine import SortMode, classify_listeners
    from work_ports.inspector import InspectionError, collect_listeners
    from work_ports.render import render_json, render_tables

    try:
        config = Config.load()
    except ValueError as e:
        wp_logging.config_invalid(str(e))
        raise SystemExit(1) from e

    wp_logging.configure(config, verbose=verbose)
    log = wp_logging.get_structlog()

    display = config.display
    show_all = show_all or display.show_all
    sort = sort or display.sort
    limit = display.limit if limit is None else limit

    try:
        records = collect_listeners(timeout=config.system.lsof_timeout)
    except InspectionError as e:
        log.error("inspection_failed", error=str(e))
        wp_logging.inspection_failed(str(e))
        raise SystemExit(1) from e

    result = classify_listeners(
        records,
        config.rules.to_rule_set(),
        show_all=show_all,
        mode=SortMode(sort),
        limit=limit,
        port=port,
        process=process,
    )
    log.info("ports_listed", records=len(records), total=result.total, show_all=show_all)

    if fmt == "json":
        click.echo(render_json(result))
        return

    if result.is_empty:
        wp_logging.no_ports_found(show_all)
        return

    render_tables(
        result,
        Console(highlight=False),
        known_ports=config.ports,
        command_width=display.command_width,
    )


@main.command()
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
def init(force: bool) -> None:
    """Write the default configuration file."""
    from work_ports import logging as wp_logging
    from work_ports.config import Config

    cfg = Config()
    if cfg.config_path.exists() and not force:
        wp_logging.config_exists(str(cfg.config_path))
        return

    cfg.save()
    wp_logging.config_created(str(cfg.config_path))


@main.group()
def config() -> None:
    """Manage configuration."""
    pass


@config.command("show")
def config_show() -> None:
    """Display current configuration."""
    from work_ports import logging as wp_logging
    from work_ports.config import Config

    try:
        cfg = Config.load()
    except ValueError as e:
        wp_logging.config_invalid(str(e))
        raise SystemExit(1) from e

    click.echo(f"Config file: {cfg.config_path}")
    click.echo(f"Exists: {cfg.config_path.exists()}")
    click.echo()
    click.echo("[rules]")
    click.echo(f"  score_threshold = {cfg.rules.score_threshold}")
    click.echo(f"  dev_process_names = {', '.join(cfg.rules.dev_process_names)}")
    click.echo(f"  dev_keywords = {', '.join(cfg.rules.dev_keywords)}")
    click.echo(f"  exclude_process_names = {', '.join(cfg.rules.exclude_process_names)}")
    click.echo()
    click.echo("[display]")
    click.echo(f"  sort = {cfg.display.sort}")
    click.echo(f"  limit = {cfg.display.limit}")
    click.echo(f"  show_all = {cfg.display.show_all}")
    click.echo(f"  command_width = {cfg.display.command_width}")
    click.echo()
    click.echo("[ports]")
    for port in sorted(cfg.ports):
        known = cfg.ports[port]
        click.echo(f"  {port} = {known.name} ({known.category})")


@config.command("edit")
def config_edit() -> None:
    """Open config file in editor."""
    import os
    import subprocess

    from work_ports import logging as wp_logging
    from work_ports.config import Config

    cfg = Config()

    # Create config if it doesn't exist
    if not cfg.config_path.exists():
        cfg.save()
        wp_logging.config_created(str(cfg.config_path))

    editor = os.environ.get("EDITOR", "nano")
    subprocess.run([editor, str(cfg.config_path)])


@config.command("reset")
@click.confirmation_option(prompt="Reset config to defaults?")
def config_reset() -> None:
    """Reset configuration to defaults."""
    from work_ports.config import Config

    cfg = Config()
    cfg.save()
    click.echo(f"Config reset to defaults at {cfg.config_path}")


if __name__ == "__main__":
    main()
