"""Protean Engine runner for the kasuwa domain.

Starts the Engine that processes events asynchronously in production:
- OutboxProcessor: polls outbox table, publishes events to Redis Streams
- StreamSubscriptions: reads Redis Streams, invokes projectors and event handlers

Usage:
    PROTEAN_ENV=production python src/server.py
"""

import asyncio

from protean.server.engine import Engine

import kasuwa.api  # noqa: F401  # loaded before kasuwa.init() traverses the package
from kasuwa.domain import kasuwa
from kasuwa.utils.logging import configure_logging


async def run():
    kasuwa.init()
    engine = Engine(kasuwa)
    await engine.run()


def main():
    configure_logging()
    asyncio.run(run())


if __name__ == "__main__":
    main()
