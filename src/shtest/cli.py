# cli.py
from __future__ import annotations

import json
import sys

import click

from shtest.collect import load_tests
from shtest.config import CONFIG_FILENAME, Config, load_config
from shtest.errors import (
    CollectError,
    ConfigError,
    DuplicateJobError,
    ParseError,
    ReadError,
    ShtestError,
    WriteError,
)
from shtest.generate import generate_test_jobs
from shtest.ui.console import Console, get_console, set_console


def _load_config_or_exit(config_file: str | None) -> Config:
    console = get_console()
    try:
        config = load_config(config_file)
    except ConfigError as e:
        if e.kind == "missing":
            console.print_error(
                "Config file not found",
                str(e),
                suggestion=f"Create a {CONFIG_FILENAME} file or specify one explicitly:\n  shtest run --config-file path/to/{CONFIG_FILENAME}",
            )
        else:
            console.print_error("Invalid config file", str(e))
        console.print_debug(repr(e))
        sys.exit(1)
    console.print_debug(f"config: {config}")
    return config


def _report(err: ShtestError) -> None:
    """Render a pipeline error for the user."""
    console = get_console()
    if isinstance(err, CollectError):
        if err.kind == "empty":
            console.print_error(
                "No tests found",
                str(err),
                suggestion="Add test files to the test directory or point test-dir at the right place.",
            )
        else:
            console.print_error("Failed to collect tests", str(err))
    elif isinstance(err, ParseError):
        console.print_error("Invalid test file", str(err))
    elif isinstance(err, ReadError):
        console.print_error("Failed to read test file", str(err))
    elif isinstance(err, DuplicateJobError):
        console.print_error(
            "Duplicate test names",
            str(err),
            suggestion="Rename tests or modules so that their underscore-joined paths differ.",
        )
    elif isinstance(err, WriteError):
        console.print_error("Failed to write test script", str(err))
    else:
        console.print_exception(err)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """shtest: compile directories of shell test blocks into jobs."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.option(
    "-f",
    "--config-file",
    default=None,
    metavar="PATH",
    help=f"Config file path (defaults to ./{CONFIG_FILENAME})",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print jobs as JSON")
@click.pass_context
def run(ctx, config_file, as_json):
    """Generate test scripts and jobs for the test suite."""
    console = get_console()
    config = _load_config_or_exit(config_file)

    try:
        graph = load_tests(config.test_dir, file_extension=config.file_extension)
        if not as_json:
            console.print_generation_started(
                test_dir=config.test_dir,
                out_dir=config.scripts_dir,
                module_count=graph.leaf_count,
            )
        jobs = generate_test_jobs(config.scripts_dir, graph)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except ShtestError as e:
        _report(e)
        if ctx.obj.get("debug", False):
            console.print_exception(e)
        sys.exit(1)

    if as_json:
        console.print_info(json.dumps([j.to_dict() for j in jobs], indent=2))
        return

    console.print_header("JOBS")
    for job in jobs:
        console.print_job(job)
    console.print_results(jobs)


@cli.command(name="list")
@click.option(
    "-f",
    "--config-file",
    default=None,
    metavar="PATH",
    help=f"Config file path (defaults to ./{CONFIG_FILENAME})",
)
@click.option("--leaves", is_flag=True, default=False, help="Only list modules backed by a test file")
@click.pass_context
def list_modules(ctx, config_file, leaves):
    """List the modules of the test suite."""
    console = get_console()
    config = _load_config_or_exit(config_file)

    try:
        graph = load_tests(config.test_dir, file_extension=config.file_extension)
    except ShtestError as e:
        _report(e)
        if ctx.obj.get("debug", False):
            console.print_exception(e)
        sys.exit(1)

    modules = graph.iter_leaf_modules() if leaves else graph.iter_modules()
    console.print_header("MODULES")
    for module in modules:
        console.print_module(module)


if __name__ == "__main__":
    cli()
