"""Operator CLI over the contact services.

    python main.py contacts --query acme --page 2
    python main.py potential --limit 50
    python main.py stats
    python main.py upgrade --row 5 --actor alice --set department=Sales
    python main.py link --row 5 --opportunity OPP1700000000000 --actor alice
    python main.py file --row 7 --actor alice
    python main.py retry-promotions --actor alice

Results are printed as JSON on stdout; log lines go to stderr.
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

import settings
from container import Container, open_container
from datacore.errors import DataCoreError

logger = logging.getLogger(__name__)


def _field_assignment(text: str) -> tuple[str, str]:
    name, sep, value = text.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"expected field=value, got {text!r}")
    return name.strip(), value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="main.py", description="CRM data core CLI")
    parser.add_argument(
        "--legacy-only",
        action="append",
        default=[],
        metavar="ENTITY",
        help="read this entity from the legacy sheet only (contacts, companies, links)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("contacts", help="search Official contacts")
    p.add_argument("--query", default="")
    p.add_argument("--page", type=int, default=1)

    p = sub.add_parser("potential", help="list Potential contacts, newest first")
    p.add_argument("--limit", type=int, default=2000)
    p.add_argument("--query", default="")

    sub.add_parser("stats", help="Potential contact status counts")

    p = sub.add_parser("upgrade", help="promote a Potential row to an Official contact")
    p.add_argument("--row", type=int, required=True)
    p.add_argument("--actor", required=True)
    p.add_argument("--set", dest="overrides", type=_field_assignment, action="append",
                   default=[], metavar="FIELD=VALUE")

    p = sub.add_parser("link", help="link a Potential row to an opportunity")
    p.add_argument("--row", type=int, required=True)
    p.add_argument("--opportunity", required=True)
    p.add_argument("--actor", required=True)

    p = sub.add_parser("file", help="archive a Potential row without promoting it")
    p.add_argument("--row", type=int, required=True)
    p.add_argument("--actor", required=True)

    p = sub.add_parser("retry-promotions", help="re-apply pending RAW status writes")
    p.add_argument("--actor", required=True)

    return parser


async def run_command(args: argparse.Namespace, app: Container):
    if args.command == "contacts":
        return await app.contacts.list_official(args.query, args.page)
    if args.command == "potential":
        if args.query:
            return (await app.contacts.search_potential(args.query))["data"][:args.limit]
        return await app.contacts.list_potential(args.limit)
    if args.command == "stats":
        return await app.contacts.potential_stats()
    if args.command == "upgrade":
        return await app.bridge.upgrade(args.row, dict(args.overrides), args.actor)
    if args.command == "link":
        return await app.bridge.link(args.row, args.opportunity, args.actor)
    if args.command == "file":
        return await app.bridge.file(args.row, args.actor)
    if args.command == "retry-promotions":
        return {"completed": await app.bridge.retry_pending(args.actor)}
    raise ValueError(f"Unknown command: {args.command}")


async def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        async with open_container(legacy_only=args.legacy_only) as app:
            result = await run_command(args, app)
    except (DataCoreError, ValueError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(json.dumps({"success": False, "error": str(exc)}, ensure_ascii=False))
        return 1
    print(json.dumps(result, ensure_ascii=False, indent=2, default=str))
    return 0


if __name__ == "__main__":
    logging.basicConfig(
        level=settings.LOG_LEVEL, format="%(levelname)s %(message)s", stream=sys.stderr
    )
    sys.exit(asyncio.run(main()))
