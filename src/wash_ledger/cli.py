"""Wash ledger command line interface.

Operational tools for:
- Schema creation
- Cutoff inspection and administration
- Manager approval queues

Usage:
    wash-ledger init-db
    wash-ledger cutoff
    wash-ledger extend-cutoff --actor-id X --days 7 --reason "month close"
    wash-ledger set-cutoff --actor-id X --date 2024-03-01
    wash-ledger cutoff-history --limit 20
    wash-ledger pending-approvals --manager-id X
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from typing import Callable
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from wash_ledger.config import get_settings
from wash_ledger.database import create_schema, get_engine
from wash_ledger.errors import WashLedgerError
from wash_ledger.services.wash_service import WashService


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


class WashLedgerCli:
    """Wash ledger command line interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="wash-ledger",
            description="Wash ledger operational tools",
        )
        parser.add_argument(
            "--database-url",
            type=str,
            help="Database URL (default: $DATABASE_URL)",
        )
        parser.add_argument(
            "--log-level",
            type=str,
            help="Log level (default: $LOG_LEVEL)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("init-db", help="Create the ledger tables")
        subparsers.add_parser("cutoff", help="Show the current entry cutoff")

        extend = subparsers.add_parser(
            "extend-cutoff",
            help="Move the cutoff forward by a number of days",
        )
        extend.add_argument("--actor-id", type=parse_uuid, required=True)
        extend.add_argument("--days", type=int, required=True)
        extend.add_argument("--reason", type=str)

        set_ = subparsers.add_parser("set-cutoff", help="Set the cutoff to a date")
        set_.add_argument("--actor-id", type=parse_uuid, required=True)
        set_.add_argument(
            "--date",
            type=parse_date,
            required=True,
            help="New cutoff (YYYY-MM-DD)",
        )
        set_.add_argument("--reason", type=str)

        history = subparsers.add_parser("cutoff-history", help="List cutoff changes")
        history.add_argument(
            "--limit",
            type=int,
            default=50,
            help="Maximum changes to show (default: 50)",
        )

        pending = subparsers.add_parser(
            "pending-approvals",
            help="List pending removal requests for a manager",
        )
        pending.add_argument("--manager-id", type=parse_uuid, required=True)

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        settings = get_settings()
        logging.basicConfig(
            level=(parsed.log_level or settings.log_level).upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        self.engine = get_engine(parsed.database_url or settings.database_url)
        self.session_factory: sessionmaker[Session] = sessionmaker(
            self.engine, expire_on_commit=False, autoflush=False
        )

        # Dispatch to command handler
        handlers: dict[str, Callable[[argparse.Namespace], int]] = {
            "init-db": self._cmd_init_db,
            "cutoff": self._cmd_cutoff,
            "extend-cutoff": self._cmd_extend_cutoff,
            "set-cutoff": self._cmd_set_cutoff,
            "cutoff-history": self._cmd_cutoff_history,
            "pending-approvals": self._cmd_pending_approvals,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return handler(parsed)
        except WashLedgerError as e:
            print(f"Error [{e.code}]: {e.message}", file=sys.stderr)
            return 1
        finally:
            self.engine.dispose()

    def _cmd_init_db(self, args: argparse.Namespace) -> int:
        """Create all tables."""
        create_schema(self.engine)
        print("Schema created.")
        return 0

    def _cmd_cutoff(self, args: argparse.Namespace) -> int:
        with self.session_factory() as session:
            cutoff = WashService(session).cutoff.current()
        print(cutoff.isoformat() if cutoff else "No cutoff set")
        return 0

    def _cmd_extend_cutoff(self, args: argparse.Namespace) -> int:
        with self.session_factory() as session:
            new_cutoff = WashService(session).extend_cutoff(
                args.days, args.actor_id, args.reason
            )
        print(f"Cutoff extended to {new_cutoff.isoformat()}")
        return 0

    def _cmd_set_cutoff(self, args: argparse.Namespace) -> int:
        with self.session_factory() as session:
            new_cutoff = WashService(session).set_cutoff(
                args.date, args.actor_id, args.reason
            )
        print(f"Cutoff set to {new_cutoff.isoformat()}")
        return 0

    def _cmd_cutoff_history(self, args: argparse.Namespace) -> int:
        with self.session_factory() as session:
            changes = WashService(session).cutoff.history(args.limit)
        if not changes:
            print("No cutoff changes recorded")
            return 0
        for change in changes:
            print(
                f"{change.changed_at.isoformat()} | "
                f"{change.old_value or '-'} -> {change.new_value} | "
                f"{change.changed_by or '-'} | {change.change_reason or ''}"
            )
        return 0

    def _cmd_pending_approvals(self, args: argparse.Namespace) -> int:
        """Print pending requests as JSON lines."""
        with self.session_factory() as session:
            requests = WashService(session).pending_approvals(args.manager_id)
        for request in requests:
            print(json.dumps(request.to_dict()))
        return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    cli = WashLedgerCli()
    return cli.run(argv)


if __name__ == "__main__":
    sys.exit(main())
