from __future__ import annotations

import argparse
import json
import logging

import uvicorn
from dotenv import load_dotenv

from app.core.config import AppConfig
from app.core.logging import setup_logging
from app.core.mongo import connect_database
from app.core.mongo_migrations import apply_mongo_migrations


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="RebelX CRM API server.")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address.")
    serve.add_argument("--port", type=int, default=8000, help="Bind port.")
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Restart on code changes (development only).",
    )

    sub.add_parser("migrate", help="Apply pending MongoDB index migrations and exit.")
    return parser


def main() -> None:
    load_dotenv()
    config = AppConfig.from_env()
    setup_logging(config.logging.level)
    logger = logging.getLogger("main")
    args = build_parser().parse_args()

    if args.command == "migrate":
        applied = apply_mongo_migrations(connect_database(config.mongo))
        logger.info("Migrations finished.")
        print(json.dumps({"applied": applied}, indent=2))
        return

    uvicorn.run(
        "web_api:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
