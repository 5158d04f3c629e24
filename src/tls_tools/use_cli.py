# Run the cli version of the app: generate, inspect and refresh the RPC TLS pair
import argparse, json, logging
from datetime import timedelta
from pathlib import Path
from typing import Any, List

from . import config
from .cert import desired_sans, ensure_cert, gen_cert_pair, load_cert
from .errors import CertError
from .generate import KEY_TYPES
from .outdated import san_diff
from .record import CertificateRecord

OUTDATED_EXIT = 2


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def _wanted(args):
    extra_ips = args.ip if args.ip is not None else config.TLS_EXTRA_IPS
    extra_dns = args.dns if args.dns is not None else config.TLS_EXTRA_DOMAINS
    return desired_sans(extra_ips, extra_dns, disable_autofill=args.no_autofill)


def _print_record(record: CertificateRecord) -> None:
    d = record.to_dict()
    print(f"Common name: {d['common_name']}")
    print(f"Serial:      {d['serial_number']}")
    print(f"Valid:       {d['not_before']} -> {d['not_after']}")
    print(f"IPs:         {', '.join(d['ip_addresses']) or '(none)'}")
    print(f"DNS names:   {', '.join(d['dns_names']) or '(none)'}")


def cmd_gen(args) -> int:
    cert_path = Path(args.cert)
    if cert_path.exists() and not args.force:
        print(f"{cert_path} already exists, use --force to overwrite (or `ensure` to refresh only if needed)")
        return 1
    ips, dns = _wanted(args)
    record = gen_cert_pair(
        args.common_name, args.cert, args.key, ips, dns,
        timedelta(days=args.validity_days), key_type=args.key_type,
    )
    print(f"Wrote {args.cert} and {args.key}")
    _print_record(record)
    return 0


def cmd_check(args) -> int:
    _key_pair, record = load_cert(args.cert, args.key)
    ips, dns = _wanted(args)
    diff = san_diff(record, ips, dns)

    if diff.empty:
        print("Certificate is up to date.")
        return 0

    print("Certificate is OUTDATED:")
    for label, values in (
        ("missing IPs", diff.missing_ips),
        ("unexpected IPs", diff.extra_ips),
        ("missing DNS names", diff.missing_dns),
        ("unexpected DNS names", diff.extra_dns),
    ):
        if values:
            print(f"  {label}: {', '.join(sorted(map(str, values)))}")
    return OUTDATED_EXIT


def cmd_ensure(args) -> int:
    ips, dns = _wanted(args)
    _key_pair, record, regenerated = ensure_cert(
        args.cert, args.key,
        common_name=args.common_name, ips=ips, dns=dns,
        validity=timedelta(days=args.validity_days), key_type=args.key_type,
        refresh=not args.no_refresh,
    )
    print("Regenerated certificate." if regenerated else "Certificate is up to date, nothing to do.")
    _print_record(record)
    return 0


def cmd_show(args) -> int:
    _key_pair, record = load_cert(args.cert, args.key)
    _print_record(record)
    if record.is_expired():
        print("WARNING: certificate has expired")
    if args.json:
        _write_json(Path(args.json), record.to_dict())
        print(f"Wrote JSON: {args.json}")
    return 0


def cmd_serve(args) -> int:
    # flask is only needed here, keep it out of the other commands' import path
    from .rpc.server import run

    ips, dns = _wanted(args)
    run(
        args.host, args.port, args.cert, args.key,
        common_name=args.common_name, ips=ips, dns=dns,
        validity=timedelta(days=args.validity_days), key_type=args.key_type,
    )
    return 0


def cmd_ping(args) -> int:
    from .rpc.client import RpcClient
    import requests

    client = RpcClient(args.host, args.port, args.cert)
    try:
        status = client.status()
    except requests.RequestException as e:
        print(f"RPC server at {client.base_url} not reachable: {e}")
        return 1
    print(json.dumps(status, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    # shared by every subcommand
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--cert", default=config.TLS_CERT_PATH)
    common.add_argument("--key", default=config.TLS_KEY_PATH)

    sans = argparse.ArgumentParser(add_help=False)
    sans.add_argument("--ip", action="append", help="Extra IP to put in the cert (repeatable)")
    sans.add_argument("--dns", action="append", help="Extra DNS name to put in the cert (repeatable)")
    sans.add_argument("--no-autofill", action="store_true", default=config.TLS_DISABLE_AUTOFILL,
                      help="Don't add localhost/loopback/hostname automatically")

    ident = argparse.ArgumentParser(add_help=False)
    ident.add_argument("--common-name", default=config.TLS_COMMON_NAME)
    ident.add_argument("--validity-days", type=int, default=config.TLS_VALIDITY_DAYS)
    ident.add_argument("--key-type", choices=KEY_TYPES, default=config.TLS_KEY_TYPE)

    rpc = argparse.ArgumentParser(add_help=False)
    rpc.add_argument("--host", default=config.RPC_HOST)
    rpc.add_argument("--port", type=int, default=config.RPC_PORT)

    p = argparse.ArgumentParser(prog="tls-tools")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    gen = sub.add_parser("gen", parents=[common, sans, ident], help="Generate a new cert/key pair")
    gen.add_argument("--force", action="store_true", help="Overwrite an existing cert")
    gen.set_defaults(func=cmd_gen)

    check = sub.add_parser("check", parents=[common, sans], help="Report whether the cert's IPs/DNS names are outdated")
    check.set_defaults(func=cmd_check)

    ensure = sub.add_parser("ensure", parents=[common, sans, ident], help="Generate the pair if missing, refresh it if stale")
    ensure.add_argument("--no-refresh", action="store_true", help="Only generate when missing")
    ensure.set_defaults(func=cmd_ensure)

    show = sub.add_parser("show", parents=[common], help="Print the cert's details")
    show.add_argument("--json")
    show.set_defaults(func=cmd_show)

    serve = sub.add_parser("serve", parents=[common, sans, ident, rpc], help="Run the local RPC server over TLS")
    serve.set_defaults(func=cmd_serve)

    ping = sub.add_parser("ping", parents=[common, rpc], help="Query the RPC server's /status")
    ping.set_defaults(func=cmd_ping)

    return p


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.func(args)
    except CertError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
