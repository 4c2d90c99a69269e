# examples/chat_example.py
"""
Example demonstrating genchat chat sessions against the Gemini API.

This script shows how to:
1. Load configuration and set up logging.
2. Send messages without awaiting each one; they are still sent in order.
3. Stream a response while the history updates in the background.
4. Handle potential errors.

Prerequisites:
- Install genchat: `pip install -e .`
- Set the `GOOGLE_API_KEY` environment variable (or `GENCHAT_API_KEY`).
"""

import asyncio
import logging

from genchat import (ConfigError, GenChatError, GenerativeAI, TransportError,
                     load_config)
from genchat.logging_config import configure_logging

logger = logging.getLogger(__name__)


async def main():
    """Runs the chat session example."""
    config = load_config()
    configure_logging(app_name="chat_example", config={**config.logging, "console_enabled": True,
                                                        "console_level": "INFO"})

    try:
        client = GenerativeAI.from_config(config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return

    model = client.get_generative_model(system_instruction="Answer in one short sentence.")
    chat = model.start_chat()

    try:
        # 1. Two sends started back to back; the second sees the first exchange.
        first = asyncio.create_task(chat.send_message("Pick a number between 1 and 10."))
        second = asyncio.create_task(chat.send_message("Now double it."))
        for result in await asyncio.gather(first, second):
            logger.info(f"Model: {result.response.text()}")

        # 2. Streaming
        stream_result = await chat.send_message_stream("Name three colors.")
        async for chunk in stream_result.stream:
            print(chunk.text(), end="", flush=True)
        print()

        history = await chat.get_history()
        logger.info(f"History now holds {len(history)} turns.")
    except TransportError as e:
        logger.error(f"Generation call failed: {e}")
    except GenChatError as e:
        logger.error(f"genchat error: {e}")


if __name__ == "__main__":
    asyncio.run(main())
