"""Run a plugin in-process with console progress output."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import signal
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from slsa_verify.config import load_settings
from slsa_verify.console import Console
from slsa_verify.context import ExecutionContext
from slsa_verify.errors import ToolMissing
from slsa_verify.plugin import ResultStatus, ToolParam, ToolPlugin

logger = logging.getLogger(__name__)

# Map ToolParam.type strings to Python types for argparse
TYPE_MAP: dict[str, type] = {
    "str": str,
    "int": int,
    "bool": bool,
    "path": Path,
}

# Exit codes per status
_STATUS_EXIT_CODES: dict[ResultStatus, int] = {
    ResultStatus.SUCCESS: 0,
    ResultStatus.FAILURE: 1,
    ResultStatus.CANCELLED: 130,
}


def add_params_to_parser(
    parser: argparse.ArgumentParser, params: list[ToolParam]
) -> None:
    """Add ToolParam declarations to an argparse.ArgumentParser.

    Args:
        parser: The ArgumentParser to add arguments to.
        params: List of ToolParam from plugin.get_params().
    """
    for param in params:
        kwargs: dict[str, Any] = {
            "help": param.description,
        }

        if param.positional:
            kwargs["type"] = TYPE_MAP.get(param.type, str)
            kwargs["metavar"] = param.key.upper()
            if not param.required:
                kwargs["nargs"] = "?"
                kwargs["default"] = param.default
            if param.choices:
                kwargs["choices"] = param.choices
            parser.add_argument(param.key, **kwargs)
            continue

        flag = f"--{param.name}"
        if param.type == "bool":
            # Boolean params become --flag / --no-flag
            kwargs["action"] = argparse.BooleanOptionalAction
            kwargs["default"] = param.default if param.default is not None else False
        else:
            kwargs["type"] = TYPE_MAP.get(param.type, str)
            kwargs["required"] = param.required
            if param.default is not None:
                kwargs["default"] = param.default
            if param.choices:
                kwargs["choices"] = param.choices

        parser.add_argument(flag, **kwargs)


def build_parser(plugin: ToolPlugin, prog: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description=plugin.description)
    add_params_to_parser(parser, plugin.get_params())
    return parser


def _console_progress(fraction: float, message: str) -> None:
    """Print progress to stderr."""
    pct = int(fraction * 100)
    print(f"  [{pct:3d}%] {message}", file=sys.stderr, flush=True)


@contextmanager
def _cancel_on_interrupt(cancel_event: threading.Event) -> Iterator[None]:
    """Turn the first Ctrl-C into a cancel request; a second one interrupts.

    Signal handlers can only be installed from the main thread; elsewhere
    KeyboardInterrupt keeps its default behaviour.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum, frame):
        if cancel_event.is_set():
            raise KeyboardInterrupt
        cancel_event.set()
        print("\nCancelling after the current stage (Ctrl-C again to abort)", file=sys.stderr)

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def run_plugin(plugin: ToolPlugin, args: dict[str, Any]) -> int:
    """Run a plugin in-process and return an exit code.

    Args:
        plugin: The plugin to run.
        args: Dict of parsed arguments.

    Returns:
        0 on SUCCESS, 1 on FAILURE, 130 on CANCELLED.
    """
    verbose = bool(args.get("verbose"))
    as_json = bool(args.get("json"))
    _configure_logging(verbose)

    settings = load_settings()
    # Keep stdout for the JSON document or a bare value
    report_to_stderr = as_json or getattr(plugin, "report_to_stderr", False)
    console = Console.for_terminal(
        settings.color, sys.stderr if report_to_stderr else sys.stdout
    )

    ctx = ExecutionContext(
        settings=settings,
        console=console,
        on_progress=_console_progress if verbose else (lambda f, m: None),
        cancel_event=threading.Event(),
    )

    try:
        with _cancel_on_interrupt(ctx.cancel_event):
            result = plugin.run(args, ctx)
    except KeyboardInterrupt:
        ctx.cancel_event.set()
        print("\nCancelled.", file=sys.stderr)
        return 130
    except ToolMissing as e:
        print(f"Error: {e}", file=sys.stderr)
        for tool in e.tools:
            hint = e.hints.get(tool)
            if hint:
                print(f"  {tool}: {hint}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.debug("Plugin %s raised", plugin.name, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Ctrl-C also reaches the external tool, which then fails
    if ctx.is_cancelled and result.status == ResultStatus.FAILURE:
        result = dataclasses.replace(
            result, status=ResultStatus.CANCELLED, summary="Cancelled by user"
        )

    if as_json:
        print(json.dumps(result.data, indent=2, default=str))
    elif result.status != ResultStatus.SUCCESS:
        # Nothing on stdout, so captured values stay empty on failure
        print(f"\n{result.summary}", file=sys.stderr)
    else:
        # Show "output" from data if present, else fall back to summary
        output = result.data.get("output") if result.data else None
        if output:
            print(output)
        else:
            print(f"\n{result.summary}")

    if result.artifacts:
        print("\nArtifacts:", file=sys.stderr)
        for name, path in result.artifacts.items():
            print(f"  {name}: {path}", file=sys.stderr)

    return _STATUS_EXIT_CODES.get(result.status, 1)
