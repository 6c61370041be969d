"""slsa-verify CLI entry points.

Usage:
    slsa-verify                          Show help and list available tools
    slsa-verify <tool> [args]            Run a tool
    slsa-verify <tool> --help            Show tool-specific help
    slsa-verify version                  Show version and external tool availability
    slsa-verify --version                Show version (short)

Each tool is also installed as its own script: verify-image, verify-signature,
verify-provenance, verify-sbom and verify-rekor.
"""

from __future__ import annotations

import sys

from slsa_verify import __version__
from slsa_verify.deps import INSTALL_HINTS, KNOWN_TOOLS, check_dependencies
from slsa_verify.plugin import ToolPlugin
from slsa_verify.plugins import builtin_plugins
from slsa_verify.runner import build_parser, run_plugin


def show_help(plugins: dict[str, ToolPlugin]) -> None:
    """Print help with available tools."""
    print(f"slsa-verify v{__version__} - SLSA Level 3 verification for container images\n")
    print("Usage: slsa-verify <tool> [options]\n")
    print("Available tools:")
    for name, plugin in sorted(plugins.items()):
        print(f"  {name:<20} {plugin.description}")
    print()
    print("Built-in commands:")
    print(f"  {'version':<20} Show versions and external tool availability")
    print()
    print("Global options:")
    print("  --version, -V        Show version (short)")
    print("  --help, -h           Show this help")
    print()
    print("Use 'slsa-verify <tool> --help' for tool-specific options.")


def _show_version(plugins: dict[str, ToolPlugin]) -> None:
    """Show the version of every tool and whether each external binary is installed."""
    print(f"slsa-verify v{__version__}")
    for name, plugin in sorted(plugins.items()):
        print(f"  {name:<20} {plugin.version}")
    print()
    print("External tools:")
    for check in check_dependencies(KNOWN_TOOLS):
        if check.available:
            print(f"  {check.name:<20} {check.path}")
        else:
            print(f"  {check.name:<20} not found ({INSTALL_HINTS[check.name]})")


def run_tool(name: str, argv: list[str], prog: str | None = None) -> int:
    """Parse argv for one tool and run it."""
    plugin = builtin_plugins()[name]
    parser = build_parser(plugin, prog or f"slsa-verify {name}")
    args = parser.parse_args(argv)
    return run_plugin(plugin, vars(args))


def main() -> None:
    """Main entry point."""
    plugins = builtin_plugins()

    # No arguments - show help
    if len(sys.argv) < 2:
        show_help(plugins)
        sys.exit(0)

    command = sys.argv[1]

    # Global flags
    if command in ("-h", "--help"):
        show_help(plugins)
        sys.exit(0)

    if command in ("-V", "--version"):
        print(f"slsa-verify {__version__}")
        sys.exit(0)

    if command == "version":
        _show_version(plugins)
        sys.exit(0)

    # Tool dispatch
    if command not in plugins:
        print(f"Unknown tool: {command}")
        print()
        show_help(plugins)
        sys.exit(1)

    sys.exit(run_tool(command, sys.argv[2:]))


def verify_image_main() -> None:
    sys.exit(run_tool("image", sys.argv[1:], prog="verify-image"))


def verify_signature_main() -> None:
    sys.exit(run_tool("signature", sys.argv[1:], prog="verify-signature"))


def verify_provenance_main() -> None:
    sys.exit(run_tool("provenance", sys.argv[1:], prog="verify-provenance"))


def verify_sbom_main() -> None:
    sys.exit(run_tool("sbom", sys.argv[1:], prog="verify-sbom"))


def verify_rekor_main() -> None:
    sys.exit(run_tool("rekor", sys.argv[1:], prog="verify-rekor"))


if __name__ == "__main__":
    main()
