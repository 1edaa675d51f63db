"""Common CLI utilities: JSON output, stable exit codes and command logging."""

from __future__ import annotations

import functools
import json
import sqlite3
import traceback
import uuid
from enum import IntEnum
from typing import Any

import click

from ..config.settings import ConfigError, Settings, get_settings
from ..core.time import set_default_timezone
from ..core.validation import InvalidConfig, InvalidRange, InvalidTimestamp, ValidationError
from ..observability.loguru_config import configure_loguru, get_logger
from ..storage.ledger import Ledger, RecordNotFound, open_ledger

log = get_logger("cli")


class ExitCode(IntEnum):
    """Stable exit codes for CLI commands."""

    SUCCESS = 0  # Successful execution
    VALIDATION_ERROR = 2  # Invalid payload, timestamp or range
    NOT_FOUND = 3  # Record id does not exist
    IO_ERROR = 5  # Database or file error
    CONFIG_ERROR = 6  # Configuration error
    UNKNOWN_ERROR = 7  # Unknown/unexpected error


class CLIContext:
    """Context for CLI execution with JSON output, trace ID and a lazily opened ledger."""

    def __init__(
        self,
        json_output: bool = False,
        trace_id: str | None = None,
        verbose: bool = False,
    ):
        """Initialize CLI context.

        Args:
            json_output: Enable JSON output mode
            trace_id: Trace ID for correlation
            verbose: Verbose output
        """
        self.json_output = json_output
        self.trace_id = trace_id or f"trace-{uuid.uuid4().hex[:12]}"
        self.verbose = verbose
        self._settings: Settings | None = None
        self._ledger: Ledger | None = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
            set_default_timezone(self._settings.timezone)
        return self._settings

    @property
    def ledger(self) -> Ledger:
        if self._ledger is None:
            self._ledger = open_ledger(self.settings.db_path)
        return self._ledger

    def configure_logging(self) -> None:
        """Install loguru sinks from settings.

        JSON mode keeps stdout and stderr free of log lines.
        """
        settings = self.settings
        configure_loguru(
            log_dir=settings.log_dir,
            level="DEBUG" if self.verbose else settings.log_level,
            enable_console=not self.json_output,
        )

    def close(self) -> None:
        if self._ledger is not None:
            self._ledger.close()
            self._ledger = None

    def output(
        self, data: Any, status: str = "success", error: str | None = None, meta: dict[str, Any] | None = None
    ) -> None:
        """Output result in appropriate format.

        Args:
            data: Result data
            status: Status ("success", "error")
            error: Error message if status is error
            meta: Additional metadata
        """
        if self.json_output:
            # JSON mode: print only JSON, no logs
            result: dict[str, Any] = {"status": status, "trace_id": self.trace_id}

            if error:
                result["error"] = error
            else:
                result["data"] = data

            if meta:
                result["meta"] = meta

            click.echo(json.dumps(result, ensure_ascii=False, indent=2, default=str))
        elif status == "error":
            click.echo(f"Error: {error}", err=True)
        elif isinstance(data, dict):
            for key, value in data.items():
                click.echo(f"{key}: {_human(value)}")
        elif isinstance(data, list):
            if not data:
                click.echo("(no records)")
            for item in data:
                click.echo(f"  - {_human(item)}")
        else:
            click.echo(data)


def _human(value: Any) -> str:
    if isinstance(value, dict):
        return ", ".join(f"{k}={v}" for k, v in value.items() if v is not None)
    if isinstance(value, list):
        return f"{len(value)} item(s)"
    return str(value)


def cli_command(func):
    """Decorator to add common CLI options to commands.

    Adds:
    - --json: JSON output mode
    - --trace-id: Trace ID for correlation
    - --verbose: Verbose output (debug logging, tracebacks)
    """

    @click.option("--json", "json_output", is_flag=True, help="Output as JSON (machine-readable)")
    @click.option("--trace-id", type=str, help="Trace ID for correlation")
    @click.option("--verbose", "-v", is_flag=True, help="Verbose output")
    @functools.wraps(func)
    def wrapper(json_output: bool, trace_id: str | None, verbose: bool, *args: Any, **kwargs: Any) -> Any:
        ctx = CLIContext(json_output=json_output, trace_id=trace_id, verbose=verbose)
        try:
            ctx.configure_logging()
        except ConfigError as exc:
            return handle_cli_error(ctx, exc, func.__name__, kwargs)

        try:
            return func(ctx, *args, **kwargs)
        finally:
            ctx.close()

    return wrapper


def exit_code_for(exc: Exception) -> ExitCode:
    """Map an exception to its stable exit code."""
    if isinstance(exc, (ValidationError, InvalidTimestamp, InvalidRange)):
        return ExitCode.VALIDATION_ERROR
    if isinstance(exc, RecordNotFound):
        return ExitCode.NOT_FOUND
    if isinstance(exc, (ConfigError, InvalidConfig)):
        return ExitCode.CONFIG_ERROR
    if isinstance(exc, (OSError, sqlite3.Error)):
        return ExitCode.IO_ERROR
    return ExitCode.UNKNOWN_ERROR


def handle_cli_error(ctx: CLIContext, exc: Exception, cmd: str, args: dict[str, Any]) -> int:
    """Handle CLI error and return appropriate exit code.

    Args:
        ctx: CLI context
        exc: Exception to handle
        cmd: Command name
        args: Command arguments

    Returns:
        Appropriate exit code
    """
    exit_code = exit_code_for(exc)
    error_msg = str(exc)

    bound = log.bind(trace_id=ctx.trace_id, command=cmd, args=args, exit_code=int(exit_code))
    if exit_code == ExitCode.UNKNOWN_ERROR:
        bound.opt(exception=exc).error(f"{cmd} failed: {error_msg}")
    else:
        bound.warning(f"{cmd} failed: {error_msg}")

    meta: dict[str, Any] = {"exit_code": int(exit_code), "error_type": type(exc).__name__}
    if isinstance(exc, ValidationError) and exc.errors:
        meta["errors"] = exc.errors

    ctx.output(None, status="error", error=error_msg, meta=meta)

    if ctx.verbose and not ctx.json_output:
        click.echo("\nTraceback:", err=True)
        click.echo("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)), err=True)

    return int(exit_code)


def handle_cli_success(
    ctx: CLIContext, data: Any, cmd: str, args: dict[str, Any], meta: dict[str, Any] | None = None
) -> int:
    """Handle CLI success and return success code.

    Args:
        ctx: CLI context
        data: Success data
        cmd: Command name
        args: Command arguments
        meta: Additional metadata

    Returns:
        Success exit code (0)
    """
    log.bind(trace_id=ctx.trace_id, command=cmd, args=args).debug(f"{cmd} succeeded")
    ctx.output(data, status="success", meta=meta)
    return int(ExitCode.SUCCESS)
