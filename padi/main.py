"""Pad-i server entry point."""

import logging

from aiohttp import web

from padi.config import settings
from padi.llm.client import LLMClient
from padi.store.database import ChatStore
from padi.web.server import create_web_app

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Start the HTTP API."""
    if not settings.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY is empty; completions will fail")

    store = ChatStore()
    llm = LLMClient()
    app = create_web_app(store, llm)

    logger.info(
        "Starting Pad-i on %s:%d (model %s, database %s)",
        settings.host,
        settings.port,
        settings.chat_model,
        settings.database_path,
    )
    web.run_app(app, host=settings.host, port=settings.port, print=None)


if __name__ == "__main__":
    main()
