"""
deno-bridge command line.

Usage:
    deno-bridge resolve [--json]
    deno-bridge probe BINARY
    deno-bridge run -- ARGS...
    deno-bridge bundle --base-path DIR --dist-dir DIR --build-id ID --function NAME=PATH...
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from typing import Sequence

from .bridge import DenoBridge
from .bundler import EdgeFunction, bundle_eszip
from .config import BridgeConfig, load_config
from .detection import get_binary_version
from .errors import BridgeError, RunError
from .logging_config import get_logger, setup_logging


def _build_config(args: argparse.Namespace) -> BridgeConfig:
    config = load_config(custom_path=args.config, verbose=args.verbose)
    changes = {}
    if args.cache_dir:
        changes["cache_directory"] = args.cache_dir
    if args.no_global:
        changes["use_global"] = False
    if args.version_range:
        changes["version_range"] = args.version_range
    return replace(config, **changes) if changes else config


def _build_bridge(args: argparse.Namespace) -> DenoBridge:
    return DenoBridge.from_config(_build_config(args), verbose=args.verbose)


def parse_function(value: str) -> EdgeFunction:
    """Parse a ``NAME=PATH`` command line argument."""
    name, sep, path = value.partition("=")
    if not sep or not name or not path:
        raise argparse.ArgumentTypeError(f"Expected NAME=PATH, got {value!r}")
    return EdgeFunction(name=name, path=path)


def cmd_resolve(args: argparse.Namespace) -> int:
    """Print the binary that would be used."""
    result = _build_bridge(args).resolve()
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(result.path)
    return 0


def cmd_probe(args: argparse.Namespace) -> int:
    """Print the version an executable reports."""
    version = get_binary_version(args.binary, verbose=args.verbose)
    if version is None:
        print("unknown")
        return 1
    print(version)
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Run the resolved binary with pass-through arguments."""
    runtime_args = list(args.runtime_args)
    if runtime_args and runtime_args[0] == "--":
        runtime_args = runtime_args[1:]
    _build_bridge(args).run(runtime_args, wait=True)
    return 0


def cmd_bundle(args: argparse.Namespace) -> int:
    """Bundle functions into an ESZIP archive and print its descriptor."""
    config = _build_config(args)
    bridge = DenoBridge.from_config(config, verbose=args.verbose)
    bundle = bundle_eszip(
        base_path=args.base_path,
        build_id=args.build_id,
        deno=bridge,
        dist_directory=args.dist_dir,
        functions=args.functions,
        debug=args.debug or config.debug,
        bundler_path=args.bundler,
    )
    print(json.dumps(bundle.to_dict(), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deno-bridge",
        description="Resolve, provision and run a version-pinned deno runtime",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Configuration file (YAML or JSON)")
    parser.add_argument("--cache-dir", help="Cache directory for downloaded binaries")
    parser.add_argument("--no-global", action="store_true", help="Ignore deno found on PATH")
    parser.add_argument("--version-range", help="Semver range the runtime must satisfy")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", help="No log output on the console")
    parser.add_argument("--log-file", help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Print the runtime binary to use")
    resolve.add_argument("--json", action="store_true", help="Print resolution details as JSON")
    resolve.set_defaults(handler=cmd_resolve)

    probe = subparsers.add_parser("probe", help="Print the version an executable reports")
    probe.add_argument("binary", help="Executable path or command name")
    probe.set_defaults(handler=cmd_probe)

    run = subparsers.add_parser("run", help="Run the runtime with the given arguments")
    run.add_argument("runtime_args", nargs=argparse.REMAINDER, help="Arguments for the runtime")
    run.set_defaults(handler=cmd_run)

    bundle = subparsers.add_parser("bundle", help="Bundle functions into an ESZIP archive")
    bundle.add_argument("--base-path", required=True, help="Root directory of the functions")
    bundle.add_argument("--dist-dir", required=True, help="Output directory")
    bundle.add_argument("--build-id", required=True, help="Artifact name (without extension)")
    bundle.add_argument(
        "--function",
        dest="functions",
        action="append",
        type=parse_function,
        required=True,
        metavar="NAME=PATH",
        help="Function to bundle (repeatable)",
    )
    bundle.add_argument("--bundler", help="Bundler script to run instead of the default")
    bundle.add_argument("--debug", action="store_true", help="Keep the runtime's diagnostic output")
    bundle.set_defaults(handler=cmd_bundle)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for deno-bridge."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)

    try:
        return args.handler(args)
    except RunError as e:
        get_logger().error(e.message)
        return e.exit_code if e.exit_code > 0 else 1
    except BridgeError as e:
        get_logger().error(e.message)
        if e.remediation:
            get_logger().info(f"Hint: {e.remediation}")
        return 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
