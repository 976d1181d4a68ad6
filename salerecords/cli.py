from __future__ import annotations

import argparse
import json
import logging
import signal

from salerecords.clients.lookups import build_lookups
from salerecords.core.config import get_settings
from salerecords.core.context import TraceContext
from salerecords.core.logging import configure_logging
from salerecords.events.publisher import build_publishers
from salerecords.persistence.pg import init_db, session_scope

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sale record reconciliation service")
    parser.add_argument("--log-level", default=None)
    top = parser.add_subparsers(dest="command", required=True)

    top.add_parser("consume", help="Consume order events until interrupted")

    serve = top.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    republish = top.add_parser("republish", help="Publish a stored sale record again")
    republish.add_argument("--transaction-id", type=int, required=True)

    return parser


def _consume(args: argparse.Namespace) -> int:
    from salerecords.events.consumer import OrderEventConsumer
    from salerecords.events.kafka import build_kafka_consumer

    settings = get_settings()
    init_db()
    with build_publishers(settings) as publishers:
        consumer = OrderEventConsumer(
            build_kafka_consumer(settings),
            session_scope,
            build_lookups(settings),
            publishers,
            settings=settings,
        )
        signal.signal(signal.SIGTERM, lambda *_: consumer.stop())
        try:
            consumer.run()
        except KeyboardInterrupt:
            logger.info("consumer interrupted")
    return 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "salerecords.main:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
    )
    return 0


def _republish(args: argparse.Namespace) -> int:
    from salerecords.reconciliation.controller import ReconciliationController

    settings = get_settings()
    init_db()
    with build_publishers(settings) as publishers, session_scope() as session:
        controller = ReconciliationController(session, build_lookups(settings), publishers, settings=settings)
        record = controller.republish(args.transaction_id, TraceContext(action_id="republish"))
        if record is None:
            print(json.dumps({"error": f"transaction {args.transaction_id} not found"}))
            return 1
        print(json.dumps({"transaction_id": record.transaction_id, "republished": True}))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "consume":
        return _consume(args)
    if args.command == "serve":
        return _serve(args)
    if args.command == "republish":
        return _republish(args)

    parser.error("unsupported command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
