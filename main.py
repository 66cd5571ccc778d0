"""seq-dev-apphost: run a Seq reactor at the console against a live server."""

import logging
import signal
import sys
import threading

from apphost.client import FilterError, SeqClient, SourceError
from apphost.config import ConfigError, load_config
from apphost.console import Console
from apphost.reactor import ReactorDispatcher, ReactorLoadError, load_reactor
from apphost.stats import TailStats
from apphost.tail import Tailer

EXIT_FATAL = 1
EXIT_CONFIG = 2

logger = logging.getLogger(__name__)


def fail(error: Exception, status: int) -> int:
    """Print a marked diagnostic to stderr and return the exit status."""
    Console(sys.stderr, color=sys.stderr.isatty()).error(f"seq-dev-apphost: {error}")
    logger.debug("Fatal error", exc_info=error)
    return status


def main(argv: list[str] | None = None) -> int:
    try:
        config = load_config(argv)
    except ConfigError as e:
        return fail(e, EXIT_CONFIG)

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        stream=sys.stderr,
    )

    cancel = threading.Event()

    def signal_handler(signum, frame):
        logger.info("Received signal %d, shutting down...", signum)
        cancel.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    color = config.color if config.color is not None else sys.stdout.isatty()
    console = Console(sys.stdout, color=color)
    stats = TailStats()
    client = SeqClient(config.server, config.api_key, timeout=config.request_timeout)

    try:
        reactor = load_reactor(config.reactor) if config.reactor else None
        strict = client.to_strict(config.filter) if config.filter else None
    except (ReactorLoadError, FilterError) as e:
        client.close()
        return fail(e, EXIT_CONFIG)
    except SourceError as e:
        client.close()
        return fail(e, EXIT_FATAL)
    except Exception as e:
        logger.exception("Unexpected error during startup")
        client.close()
        return fail(e, EXIT_FATAL)

    if reactor is None:
        logger.info("No reactor given; events will only be printed")

    tailer = Tailer(
        client,
        console,
        ReactorDispatcher(reactor, stats),
        strict_filter=strict,
        window=config.window,
        idle_delay=config.idle_delay,
        lookback=config.requery_lookback,
        stats=stats,
    )
    logger.info("Starting tail: server=%s, window=%d", client.server, config.window)

    try:
        tailer.run(cancel)
    except SourceError as e:
        return fail(e, EXIT_FATAL)
    except Exception as e:
        logger.exception("Unexpected error in tail loop")
        return fail(e, EXIT_FATAL)
    finally:
        client.close()
        logger.info("Stats: %s", stats.summary())
    return 0


if __name__ == "__main__":
    sys.exit(main())
