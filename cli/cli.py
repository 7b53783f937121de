# cli/cli.py
"""
Operator command line for the business directory engine.
"""
from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Callable, Dict, Optional

from bizdir.core.exceptions import BaseAPIException
from bizdir.db.base import init_models
from bizdir.db.session import create_database_engine, dispose_engine, session_scope
from bizdir.services.business_writer import regenerate_seo
from bizdir.services.category_matcher import load_categories, resolve_category
from bizdir.services.ownership import find_multiply_approved, resolve_ownership


def _supports_color() -> bool:
    if sys.platform == "win32":
        return os.getenv("TERM") == "xterm" or os.getenv("ANSICON") is not None
    return sys.stdout.isatty()


SUPPORTS_COLOR = _supports_color()

GREEN = '\033[92m' if SUPPORTS_COLOR else ''
RED = '\033[91m' if SUPPORTS_COLOR else ''
YELLOW = '\033[93m' if SUPPORTS_COLOR else ''
BLUE = '\033[94m' if SUPPORTS_COLOR else ''
RESET = '\033[0m' if SUPPORTS_COLOR else ''


def print_success(message: str):
    print(f"{GREEN}[✓]{RESET} {message}")


def print_error(message: str):
    print(f"{RED}[✗]{RESET} {message}")


def print_warning(message: str):
    print(f"{YELLOW}[!]{RESET} {message}")


def print_info(message: str):
    print(f"{BLUE}[i]{RESET} {message}")


async def cmd_init_db(args: argparse.Namespace) -> int:
    """Command: create (or with --drop, recreate) the schema."""
    engine = create_database_engine()
    if args.drop:
        print_warning("Dropping existing tables")
    await init_models(engine, drop=args.drop)
    print_success("Schema ready")
    return 0


async def cmd_match_category(args: argparse.Namespace) -> int:
    """Command: show which canonical category a label resolves to."""
    async with session_scope() as session:
        match = resolve_category(args.label, await load_categories(session))

    if match.category is None:
        print_warning(f"{args.label!r}: {match.status.value}")
        return 1
    print_success(
        f"{args.label!r} -> {match.category.name} (id={match.category.id}, level={int(match.level)})"
    )
    return 0


async def cmd_resolve_owner(args: argparse.Namespace) -> int:
    """Command: show the resolved owner of a business."""
    async with session_scope() as session:
        ownership = await resolve_ownership(session, args.business_id)

    if ownership.claimed:
        print_success(f"{args.business_id}: owned by {ownership.owner_id} (claim {ownership.claim_id})")
    else:
        print_info(f"{args.business_id}: unclaimed, leads go to the administrator")
    return 0


async def cmd_audit_claims(args: argparse.Namespace) -> int:
    """Command: report businesses with more than one approved claim."""
    async with session_scope() as session:
        offenders = await find_multiply_approved(session)
        resolved = {bid: await resolve_ownership(session, bid) for bid in offenders}

    if not offenders:
        print_success("No business has more than one approved claim")
        return 0

    print_error(f"{len(offenders)} business(es) with multiple approved claims")
    for bid, claim_ids in sorted(offenders.items()):
        print(f"  {bid}: claims {claim_ids}, resolving to {resolved[bid].owner_id}")
    return 1


async def cmd_regenerate_seo(args: argparse.Namespace) -> int:
    """Command: re-derive SEO fields that are not operator-pinned."""
    async with session_scope() as session:
        changed = await regenerate_seo(session)
    print_success(f"Regenerated SEO metadata for {changed} business(es)")
    return 0


COMMANDS: Dict[str, Callable] = {
    'init-db': cmd_init_db,
    'match-category': cmd_match_category,
    'resolve-owner': cmd_resolve_owner,
    'audit-claims': cmd_audit_claims,
    'regenerate-seo': cmd_regenerate_seo,
}


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='bizdir-cli',
        description='Business directory operator CLI',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    init_parser = subparsers.add_parser('init-db', help='Create database tables')
    init_parser.add_argument('--drop', action='store_true', help='Drop existing tables first')

    match_parser = subparsers.add_parser('match-category', help='Resolve a label to a category')
    match_parser.add_argument('label', help='Free-text category label')

    owner_parser = subparsers.add_parser('resolve-owner', help='Show the owner of a business')
    owner_parser.add_argument('business_id', help='Business id')

    subparsers.add_parser('audit-claims', help='Find businesses with several approved claims')
    subparsers.add_parser('regenerate-seo', help='Regenerate non-custom SEO metadata')

    return parser


async def _run(command_func: Callable, parsed_args: argparse.Namespace) -> int:
    try:
        return await command_func(parsed_args)
    finally:
        await dispose_engine()


def main(args: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    command_func = COMMANDS.get(parsed_args.command)
    if not command_func:
        print_error(f"Unknown command: {parsed_args.command}")
        parser.print_help()
        return 1

    try:
        return asyncio.run(_run(command_func, parsed_args))
    except KeyboardInterrupt:
        print_error("Interrupted by user")
        return 130
    except BaseAPIException as e:
        print_error(f"{e.code}: {e.message}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
