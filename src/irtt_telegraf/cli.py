from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Optional, Sequence, TextIO, Tuple

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .cli_errors import DataError, ProbeError, handle_cli_errors
from .config import AppSettings
from .exporter import export_error, export_result
from .fields import build_field_groups, status_fields
from .logging_config import setup_logging
from .models import Result, ResultConfig
from .options import JSONShape, OutputFormat, TelegrafOptions, load_options
from .probe import ProbeFailed, run_probe

console = Console()
config = AppSettings()
logger = logging.getLogger(__name__)

# metric group name -> TelegrafOptions switch
GROUP_SWITCHES = {
    "rtt": "include_rtt",
    "send-delay": "include_send_delay",
    "receive-delay": "include_receive_delay",
    "ipdv": "include_ipdv",
    "packet-loss": "include_packet_loss",
    "bitrate": "include_bitrate",
    "server-processing": "include_server_processing",
    "timer-error": "include_timer_error",
}


def _parse_tags(
    ctx: click.Context, param: click.Parameter, values: Sequence[str]
) -> Dict[str, str]:
    tags: Dict[str, str] = {}
    for raw in values:
        key, sep, value = raw.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {raw!r}")
        tags[key] = value
    return tags


def _options_decorators(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the options-file, tag and per-group switches shared by commands."""
    for name, verb in (("exclude", "Omit"), ("include", "Emit")):
        func = click.option(
            f"--{name}",
            name,
            multiple=True,
            type=click.Choice(list(GROUP_SWITCHES)),
            help=f"{verb} a metric group regardless of the options file; repeatable.",
        )(func)
    func = click.option(
        "--tag",
        "tags",
        multiple=True,
        callback=_parse_tags,
        help="Static tag as key=value; repeatable.",
    )(func)
    func = click.option(
        "--config",
        "config_file",
        type=click.Path(exists=True, dir_okay=False),
        help="YAML file with tags and include_* switches.",
    )(func)
    return func


def _output_decorators(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option(
        "--output",
        "-o",
        "output",
        type=click.File("a", encoding="utf-8"),
        default="-",
        help="Append metrics to this file instead of stdout.",
    )(func)
    func = click.option(
        "--json-shape",
        type=click.Choice([s.value for s in JSONShape]),
        default=config.TELEGRAF_JSON_SHAPE,
        show_default=True,
    )(func)
    func = click.option(
        "--format",
        "fmt",
        type=click.Choice([f.value for f in OutputFormat]),
        default=config.TELEGRAF_FORMAT,
        show_default=True,
        help="json documents or influx line protocol.",
    )(func)
    return func


def resolve_options(
    config_file: Optional[str],
    tags: Dict[str, str],
    include: Sequence[str] = (),
    exclude: Sequence[str] = (),
) -> TelegrafOptions:
    """Options file first, then command line tags and groups on top.

    A group named by both --include and --exclude is excluded.
    """
    options = load_options(config_file) if config_file else TelegrafOptions()
    overrides = {GROUP_SWITCHES[name]: True for name in include}
    overrides.update({GROUP_SWITCHES[name]: False for name in exclude})
    if overrides:
        options = replace(options, **overrides)
    if tags:
        options = options.with_tags(tags)
    return options


def _read_result(source: TextIO) -> Result:
    return Result.from_json(source.read())


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default=config.LOG_LEVEL, show_default=True)
def cli(log_level: str) -> None:
    """
    irtt-telegraf: irtt results as telegraf metrics.
    """
    setup_logging(log_level, log_file=config.LOG_FILE)


@cli.command()
@click.argument("result_file", type=click.File("r", encoding="utf-8"), default="-")
@_options_decorators
@_output_decorators
@handle_cli_errors(context="Export")
def export(
    result_file: TextIO,
    config_file: Optional[str],
    tags: Dict[str, str],
    fmt: str,
    json_shape: str,
    output: TextIO,
    include: Tuple[str, ...],
    exclude: Tuple[str, ...],
) -> None:
    """Convert an irtt JSON result (file or stdin) into telegraf metrics."""
    options = resolve_options(config_file, tags, include, exclude)
    result = _read_result(result_file)
    export_result(
        output, result, options, fmt=OutputFormat(fmt), json_shape=JSONShape(json_shape)
    )


@cli.command(name="error")
@click.option("--target", default="", help="Address of the target that failed.")
@click.option("--message", default="", help="Failure description (logged, not exported).")
@_options_decorators
@_output_decorators
@handle_cli_errors(context="Error export")
def error_cmd(
    target: str,
    message: str,
    config_file: Optional[str],
    tags: Dict[str, str],
    fmt: str,
    json_shape: str,
    output: TextIO,
    include: Tuple[str, ...],
    exclude: Tuple[str, ...],
) -> None:
    """Write a success=0 record for a failed test."""
    options = resolve_options(config_file, tags, include, exclude)
    export_error(
        output,
        RuntimeError(message) if message else None,
        target,
        options,
        fmt=OutputFormat(fmt),
        json_shape=JSONShape(json_shape),
    )


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("host")
@click.argument("irtt_args", nargs=-1, type=click.UNPROCESSED)
@click.option("--irtt-binary", default=config.IRTT_BINARY, show_default=True)
@click.option("--timeout", type=float, default=config.IRTT_TIMEOUT, show_default=True)
@click.option(
    "--fail-on-error",
    is_flag=True,
    help="Exit non-zero after writing the failure record.",
)
@_options_decorators
@_output_decorators
@handle_cli_errors(context="Probe")
def probe(
    host: str,
    irtt_args: Tuple[str, ...],
    irtt_binary: str,
    timeout: float,
    fail_on_error: bool,
    config_file: Optional[str],
    tags: Dict[str, str],
    fmt: str,
    json_shape: str,
    output: TextIO,
    include: Tuple[str, ...],
    exclude: Tuple[str, ...],
) -> None:
    """Run `irtt client` against HOST and export the result.

    Extra arguments after HOST are passed to irtt, for example
    `probe example.org -- -d 10s -i 100ms`.
    """
    options = resolve_options(config_file, tags, include, exclude)
    output_format = OutputFormat(fmt)
    shape = JSONShape(json_shape)

    try:
        result = run_probe(host, irtt_args, binary=irtt_binary, timeout=timeout)
    except ProbeFailed as e:
        logger.warning("%s", e)
        export_error(output, e, host, options, fmt=output_format, json_shape=shape)
        if fail_on_error:
            raise ProbeError(e.reason) from e
        return

    if not result.remote_address:
        result = replace(result, config=ResultConfig(remote_address=host))
    export_result(output, result, options, fmt=output_format, json_shape=shape)


@cli.command()
@click.argument("result_file", type=click.File("r", encoding="utf-8"), default="-")
@_options_decorators
@handle_cli_errors(context="Fields")
def fields(
    result_file: TextIO,
    config_file: Optional[str],
    tags: Dict[str, str],
    include: Tuple[str, ...],
    exclude: Tuple[str, ...],
) -> None:
    """Show the fields an irtt result would export, grouped per line."""
    options = resolve_options(config_file, tags, include, exclude)
    result = _read_result(result_file)
    if result.stats is None:
        raise DataError("no stats in result")

    table = Table(title=f"irtt {result.remote_address}".strip())
    table.add_column("group")
    table.add_column("field")
    table.add_column("value", justify="right")

    for name, value in status_fields(True).items():
        table.add_row("status", name, str(value))
    for group in build_field_groups(result.stats, options):
        for name, value in group.fields.items():
            shown = f"{value:.4f}" if isinstance(value, float) else str(value)
            table.add_row(group.name, name, shown)
    console.print(table)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":  # pragma: no cover - module execution convenience
    main()
