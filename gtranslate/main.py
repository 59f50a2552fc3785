"""
Entrypoint: load config, init logging, create the session, translate one text
"""

import argparse
import logging
import os
import sys

import structlog
from dotenv import load_dotenv

from .config import Config
from .errors import TranslateError
from .fetcher import global_close, global_init
from .session import create_session


def configure_logging(level: str = "INFO", json: bool = True):
    """Route structlog through the stdlib logging module."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, str(level).upper(), logging.INFO),
    )

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Translate text through the Google Translate mobile page.")
    parser.add_argument("text", help="text to translate")
    parser.add_argument("--from", dest="source", default=None, help="source language (default: auto)")
    parser.add_argument("--to", dest="target", default=None, help="target language")
    parser.add_argument("--cache-dir", default=None, help="cache directory (default: ./data/cache)")
    parser.add_argument("--cookie-dir", default=None, help="cookie directory (default: ./data/cookie)")
    parser.add_argument("--config", default=None, help="path to a config.yaml")
    return parser.parse_args(argv)


def _default_dir(name: str) -> str:
    path = os.path.join(os.getcwd(), "data", name)
    os.makedirs(path, exist_ok=True)
    return path


def main(argv=None) -> int:
    """Translate one text and print the result. Returns the exit status."""
    load_dotenv()
    args = parse_args(argv)
    cfg = Config(args.config)

    log_cfg = cfg.logging
    configure_logging(log_cfg.get('level', 'INFO'), log_cfg.get('json', True))
    logger = structlog.get_logger(__name__)

    source = args.source or cfg.session.get('source_lang')
    target = args.target or cfg.session.get('target_lang')
    cache_dir = args.cache_dir or cfg.session.get('cache_dir') or _default_dir("cache")
    cookie_dir = args.cookie_dir or cfg.session.get('cookie_dir') or _default_dir("cookie")

    global_init()
    try:
        with create_session(cfg) as session:
            steps = (
                ("set_cache_dir", lambda: session.set_cache_dir(cache_dir)),
                ("set_cookie_dir", lambda: session.set_cookie_dir(cookie_dir)),
                ("set_lang", lambda: session.set_lang(source, target)),
                ("set_text", lambda: session.set_text_copy(args.text)),
                ("execute", session.execute),
            )
            for name, step in steps:
                try:
                    step()
                except TranslateError:
                    logger.error("translation_failed", step=name, error=session.last_error)
                    print(f"Error: {name}(): {session.last_error}", file=sys.stderr)
                    return 1

            result = session.detach_result()
    except TranslateError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        global_close()

    print(f"Source language: {source or 'auto'}")
    print(f"Target language: {target}")
    print(f"Text source: {args.text}")
    print(f"Translate result = {result.decode('utf-8', errors='replace')}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
