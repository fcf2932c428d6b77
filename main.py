import anyio
import argparse
from pathlib import Path
from src.contextengine.cli import cmd_check, cmd_plan, cmd_retrieve
from src.contextengine.settings import EngineSettings
from src.utils.logger import configure_logging

INTENT_TYPES = ["product_info", "recipe", "comparison", "support", "general"]


def _add_query_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("query", type=str)
    parser.add_argument("--intent", choices=INTENT_TYPES, default="general")
    parser.add_argument(
        "--product", action="append", default=[], dest="products",
        help="Product mentioned in the query (repeatable)",
    )
    parser.add_argument("--layout", type=str, default="")


def parse_args():
    parser = argparse.ArgumentParser(description="Context retrieval engine")
    sub = parser.add_subparsers(dest="command", required=True)

    # plan
    plan = sub.add_parser("plan", help="Show the retrieval plan for a query (no services)")
    _add_query_args(plan)

    # retrieve
    retrieve = sub.add_parser("retrieve", help="Retrieve ranked context for a query")
    _add_query_args(retrieve)
    retrieve.add_argument(
        "--user-context", type=Path, default=None,
        help="JSON or YAML file with the user context",
    )

    # check
    check = sub.add_parser("check", help="Run the retrieval quality scenarios")
    check.add_argument("--test", type=str, default=None, help="Case id or improvement name")
    check.add_argument("--verbose", action="store_true", help="Include top results per case")

    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()

    if args.command == "plan":
        print(cmd_plan(args.query, args.intent, args.products, args.layout))

    elif args.command == "retrieve":
        settings = EngineSettings()
        configure_logging(settings.log_level)

        async def _retrieve():
            return await cmd_retrieve(
                args.query,
                intent_type=args.intent,
                products=args.products,
                layout=args.layout,
                user_context_path=args.user_context,
                settings=settings,
            )
        print(anyio.run(_retrieve))

    elif args.command == "check":
        settings = EngineSettings()
        configure_logging(settings.log_level)

        async def _check():
            return await cmd_check(selector=args.test, verbose=args.verbose, settings=settings)
        print(anyio.run(_check))
