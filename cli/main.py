import argparse
import json
import logging
import sys

from core.config import parse_duration, settings
from core.models import ScanConfig
from core.ports import parse_ports
from core.targets import expand_hosts
from pipeline.orchestrator import Orchestrator
from cli.output import render_json, render_table, save_results


def _print(obj):
    print(json.dumps(obj, indent=2, default=str))


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level)
    logging.basicConfig(level=level, stream=sys.stderr, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def cmd_scan(args) -> int:
    try:
        hosts = expand_hosts(args.hosts)
        ports = parse_ports(args.ports)
        config = ScanConfig.from_settings(
            settings,
            timeout=parse_duration(args.timeout) if args.timeout else None,
            workers=args.workers,
            probe=args.probe or None,
        )
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    orch = Orchestrator()
    results = orch.scan(
        hosts,
        ports,
        config,
        include_closed=args.all or settings.include_closed,
        index=args.index,
    )

    if args.json:
        render_json(results, sys.stdout)
    else:
        render_table(results, sys.stdout)
    if args.output:
        save_results(results, args.output, as_json=args.json)
        print(f"Saved results to {args.output}", file=sys.stderr)
    return 1 if orch.degraded else 0


def cmd_verify(args) -> int:
    orch = Orchestrator()
    res = orch.verify()
    _print(res)
    return 0 if res["elk"] else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="TCP connect scanner with protocol fingerprinting")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging to stderr")
    sub = parser.add_subparsers()

    p_scan = sub.add_parser("scan", help="Scan hosts for open TCP ports")
    p_scan.add_argument("--hosts", required=True, help="comma-separated hosts or IPv4 CIDR")
    p_scan.add_argument("--ports", default=settings.ports, help="e.g. 'top:100' or '1-1024,80,443'")
    p_scan.add_argument("--timeout", default=None, help="per-port budget, e.g. 500ms, 1s")
    p_scan.add_argument("--workers", type=int, default=None, help="concurrent workers per host")
    p_scan.add_argument("--probe", action="store_true", help="fingerprint services on open ports")
    p_scan.add_argument("--all", action="store_true", help="include closed ports in output")
    p_scan.add_argument("--json", action="store_true", help="output JSON")
    p_scan.add_argument("--output", help="also write the rendered results to this file")
    p_scan.add_argument("--index", action="store_true", help="send results to Elasticsearch")
    p_scan.set_defaults(func=cmd_scan)

    p_verify = sub.add_parser("verify", help="Elasticsearch connectivity check")
    p_verify.set_defaults(func=cmd_verify)
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)
    if hasattr(args, "func"):
        return args.func(args)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
