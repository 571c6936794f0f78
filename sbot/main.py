#!/usr/bin/env python3
"""
sbot command line.

Subcommands:
    serve   Run the Telegram bot trained on the ticket message store.
    babble  Train a chain on a local CSV or text file and print generated text.

Example:
    $ sbot serve --config sbot.yaml --pid /run/sbot.pid --log /var/log/sbot.log
    $ sbot babble comments.csv --keyword printer --words 30
"""

import argparse
import random
import sys

from sbot.bot.orchestrator import ChainBot
from sbot.bot.telegram_app import build_application
from sbot.models.markov_chain.chain import Chain
from sbot.utils.config import BotConfig, ConfigError, load_config
from sbot.utils.corpus_readers import read_corpus
from sbot.utils.database_adapters.postgresql.message_store import MessageStorePostgreSqlAdapter
from sbot.utils.loggers.json_logger import get_logger
from sbot.utils.process import write_pid

LOGGER_NAME = "sbot"


def serve(args):
    """Run the bot until interrupted. Returns the process exit status."""
    logger = get_logger(LOGGER_NAME, log_file=args.log or None,
                        console=not args.log)

    try:
        write_pid(args.pid)
        config = load_config(args.config)
    except (OSError, ConfigError) as e:
        logger.error(f"Startup failed: {e}")
        return 1

    store = MessageStorePostgreSqlAdapter(config.database, logger=logger)
    if not store.is_usable():
        logger.error("Message store is not usable")
        return 1

    try:
        chain_bot = ChainBot.from_store(store, config, logger=logger)
        application = build_application(chain_bot, config)
        logger.info("Serving", extra={
            "metrics": {"chat_id": config.chat_id, "chain": chain_bot.chain.stats()}
        })
        application.run_polling()
    except RuntimeError as e:
        logger.error(f"Startup failed: {e}", exc_info=True)
        return 1
    finally:
        store.close()

    return 0


def babble(args):
    """Train on a local corpus file and print one generated text."""
    logger = get_logger(LOGGER_NAME, console=True)

    try:
        corpus = read_corpus(args.corpus, csv_header=args.csv_header)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read corpus {args.corpus}: {e}")
        return 1

    rng = random.Random(args.seed) if args.seed is not None else None
    chain = Chain(args.prefix_len, rng=rng, logger=logger)
    for text in corpus:
        chain.build(text)
    logger.info("Chain built", extra={"metrics": chain.stats()})

    if args.keyword is not None:
        text = chain.generate_with_keyword(args.keyword, args.words)
    else:
        text = chain.generate(args.words)

    print(text or BotConfig.fallback_reply)
    return 0


def positive_int(value):
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def build_parser():
    parser = argparse.ArgumentParser(
        prog="sbot", description="Markov chain chat bot")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the Telegram bot")
    serve_parser.add_argument("--config", default="sbot.yaml",
                              help="Path to config file (default: sbot.yaml)")
    serve_parser.add_argument("--pid", default="",
                              help="Path to pid file. If empty, pid is not written.")
    serve_parser.add_argument("--log", default="",
                              help="Path to log file. If empty, log goes to stdout.")
    serve_parser.set_defaults(handler=serve)

    babble_parser = subparsers.add_parser(
        "babble", help="Generate text from a local corpus file")
    babble_parser.add_argument("corpus", help="CSV file (first column) or text file (one unit per line)")
    babble_parser.add_argument("--csv-header", type=int, default=None,
                               help="Header row of the CSV file (default: none)")
    babble_parser.add_argument("--prefix-len", type=positive_int, default=3,
                               help="Context length in words (default: 3)")
    babble_parser.add_argument("--words", type=int, default=100,
                               help="Maximum words per direction (default: 100)")
    babble_parser.add_argument("--keyword", default=None,
                               help="Anchor the text on a context containing this keyword")
    babble_parser.add_argument("--seed", type=int, default=None,
                               help="Random seed for reproducible output")
    babble_parser.set_defaults(handler=babble)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
