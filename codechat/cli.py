"""Chat with the knowledge base from a terminal.

Usage:
    codechat-chat --table code_examples --version 2.9.3

Shares the transcript and preferences with the API server (same state
file). Commands inside the session: ``/reset`` clears the history,
``/quit`` exits.
"""

import argparse
import asyncio
import sys

from codechat.catalog.models import ContentTable
from codechat.chat.models import ChatMessage, Sender
from codechat.chat.service import ChatService
from codechat.config import get_settings
from codechat.exceptions import CodechatError
from codechat.logging_config import get_logger, setup_logging
from codechat.wiring import build_services

logger = get_logger(__name__)

RESET_COMMAND = "/reset"
QUIT_COMMANDS = {"/quit", "/exit"}


def format_reply(message: ChatMessage) -> str:
    """Render an assistant reply with its suggestions."""
    lines = [f"assistant> {message.text}"]
    for suggestion in message.suggestions or []:
        score = ""
        if suggestion.similarity_score is not None:
            score = f" ({suggestion.similarity_score * 100:.1f}%)"
        lines.append(f"  * [{suggestion.id}] {suggestion.name}{score}")
    return "\n".join(lines)


def print_history(chat: ChatService) -> None:
    for message in chat.history():
        if message.sender is Sender.USER:
            print(f"you> {message.text}")
        else:
            print(format_reply(message))


async def run_session(
    table: ContentTable | None,
    version: str | None,
    no_filter: bool,
) -> int:
    """Interactive loop.

    Returns:
        Process exit code.
    """
    settings = get_settings()
    setup_logging(level="WARNING", json_output=False)
    services = build_services(settings)
    chat = services.chat

    try:
        if table is not None or version is not None or no_filter:
            chat.update_preferences(
                selected_version=version,
                selected_table=table,
                filter_by_version=False if no_filter else None,
            )

        prefs = chat.preferences()
        filter_text = prefs.selected_version if prefs.filter_by_version else "off"
        print(f"table: {prefs.selected_table.value} | version filter: {filter_text}")
        print_history(chat)

        loop = asyncio.get_running_loop()
        while True:
            try:
                text = await loop.run_in_executor(None, input, "you> ")
            except EOFError:
                break

            text = text.strip()
            if not text:
                continue
            if text in QUIT_COMMANDS:
                break
            if text == RESET_COMMAND:
                chat.reset()
                print("(history cleared)")
                continue

            reply = await chat.send_message(text)
            print(format_reply(reply))

    except CodechatError as e:
        logger.error(f"Chat session failed: {e.message}")
        return 1
    finally:
        await services.aclose()

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codechat-chat",
        description="Chat with the code example knowledge base",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--table",
        choices=[t.value for t in ContentTable],
        default=None,
        help="Table to search (stored for later sessions)",
    )
    parser.add_argument(
        "--version",
        default=None,
        help="Version tag to filter on (stored for later sessions)",
    )
    parser.add_argument(
        "--no-filter",
        action="store_true",
        help="Search all versions",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        table = ContentTable(args.table) if args.table else None
        code = asyncio.run(run_session(table, args.version, args.no_filter))
    except KeyboardInterrupt:
        code = 130

    sys.exit(code)


if __name__ == "__main__":
    main()
