"""Application entry point.

Small operator CLI over the ledger services::

    python main.py init-db
    python main.py stats
    python main.py top-issuers --limit 5 --sort tickets_sold
    python main.py quick-search 00023
    python main.py autofill 23
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional

from config import Config, load_config
from core import ApplicationError, StoreUnavailableError, get_logger, setup_logger
from core.app_initializer import ApplicationInitializer
from services.aggregation import SORT_KEYS, ReportService
from services.filters import SearchService
from services.numbering import format_lottery_number, parse_lottery_number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ledger", description="Lottery diary ledger")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="create schema and provision diaries")
    sub.add_parser("stats", help="print dashboard totals")

    top = sub.add_parser("top-issuers", help="issuer performance table")
    top.add_argument("--limit", type=int, default=None)
    top.add_argument("--sort", choices=sorted(SORT_KEYS), default="total_collected")
    top.add_argument("--ascending", action="store_true")

    quick = sub.add_parser("quick-search", help="look up one sold ticket")
    quick.add_argument("lottery_number")

    fill = sub.add_parser("autofill", help="show diary and issuer for a ticket")
    fill.add_argument("lottery_number")
    return parser


async def run(args: argparse.Namespace, config: Config) -> int:
    async with ApplicationInitializer(config) as app:
        if args.command == "init-db":
            print("Database initialized")

        elif args.command == "stats":
            stats = await ReportService.dashboard()
            print(f"Tickets sold:        {stats.total_tickets_sold}")
            print(f"Revenue:             {stats.total_revenue}")
            print(f"Allotted / sold / paid / returned: "
                  f"{stats.diaries_allotted} / {stats.diaries_fully_sold} / "
                  f"{stats.diaries_paid} / {stats.diaries_returned}")
            print(f"Collected:           {stats.total_amount_collected}")
            print(f"Expected (allotted): {stats.expected_amount_from_allotted}")
            print(f"Collection rate:     {stats.collection_rate}%")

        elif args.command == "top-issuers":
            rows = await ReportService.top_issuers(
                limit=args.limit if args.limit is not None else config.top_issuers_limit,
                sort_key=args.sort,
                descending=not args.ascending,
            )
            for row in rows:
                print(f"{row.issuer_name:<30} diaries={row.diaries_allotted:<4} "
                      f"sold={row.tickets_sold:<5} collected={row.total_collected} "
                      f"expected={row.expected_amount} ({row.collection_percentage}%)")

        elif args.command == "quick-search":
            result = await SearchService.quick_search(args.lottery_number)
            if not result.found:
                print(f"Ticket {format_lottery_number(result.lottery_number)} not sold")
                return 1
            ticket = result.ticket
            print(f"{format_lottery_number(ticket.lottery_number)} diary {ticket.diary_number} "
                  f"{ticket.purchaser_name} ({ticket.purchaser_contact}) "
                  f"via {ticket.issuer_name} on {ticket.purchase_date}: {ticket.amount_paid}")

        elif args.command == "autofill":
            result = await app.autofill.resolve(parse_lottery_number(args.lottery_number))
            print(result.message)
            if result.is_complete:
                print(f"Issuer: {result.issuer.issuer_name} ({result.issuer.contact_number})")
                print(f"Amount: {result.amount_paid}  Date: {result.purchase_date}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    # Without handlers, errors before setup still reach stderr
    logger = get_logger("ledger")
    try:
        config = load_config()
        logger = setup_logger(
            name="ledger",
            level=config.log_level,
            log_file=config.log_file,
            colored=sys.stdout.isatty(),
        )
        return asyncio.run(run(args, config))
    except KeyboardInterrupt:
        logger.info("Stopped by user")
        return 130
    except StoreUnavailableError as e:
        logger.error(f"Store unavailable, try again: {e}")
        return 75
    except ApplicationError as e:
        logger.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
