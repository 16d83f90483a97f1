"""Interactive CLI for the repbot workout assistant."""

import argparse
import asyncio
import sys

from .bot import parse_sender_id
from .config import configure_logging, load_config
from .core import MessageHandler


class RepbotCLI:
    """CLI that sends each typed line through the shared message handler."""

    def __init__(self, handler: MessageHandler, user_id: int) -> None:
        self._handler = handler
        self._user_id = user_id

    async def run(self) -> None:
        await self._handler.initialize()
        print("repbot workout assistant")
        print("Type 'help' for examples or 'exit' to quit.")
        print("-" * 50)

        try:
            while True:
                try:
                    user_input = input("You: ").strip()
                except (KeyboardInterrupt, EOFError):
                    print("\nGoodbye!")
                    break
                if not user_input:
                    continue
                if user_input.lower() in ("exit", "quit", "bye"):
                    print("Goodbye!")
                    break
                if user_input.lower() == "help":
                    self._show_help()
                    continue

                response = await self._handler.process(user_input, self._user_id)
                if response is None:
                    print("(no reply, see the log)")
                else:
                    print(f"repbot: {response}")
                print("-" * 50)
        finally:
            await self._handler.close()

    def _show_help(self) -> None:
        print(
            "Examples:\n"
            "\n"
            "  Log a workout:\n"
            '    "did 3 sets of squats: 10x60kg, 8x70kg, 5x80kg"\n'
            "\n"
            "  Ask about your data:\n"
            '    "what\'s my max weight on squats?"\n'
            "\n"
            "  help  - show this message\n"
            "  exit  - quit"
        )


def main_sync(argv: list[str] | None = None) -> None:
    """Entry point for pyproject.toml console_scripts."""
    parser = argparse.ArgumentParser(description="Chat with repbot from the terminal")
    parser.add_argument("--user-id", default="1", help="Numeric user id to log as")
    args = parser.parse_args(argv)

    user_id = parse_sender_id(args.user_id)
    if user_id is None:
        parser.error(f"invalid --user-id: {args.user_id!r}")

    config = load_config()
    configure_logging(config)
    cli = RepbotCLI(MessageHandler(config), user_id)
    try:
        asyncio.run(cli.run())
    except KeyboardInterrupt:
        print("\nGoodbye!")
        sys.exit(0)


if __name__ == "__main__":
    main_sync()
