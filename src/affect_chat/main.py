"""Application entrypoint — start the API server or chat in the terminal."""

from __future__ import annotations

import argparse
import asyncio
import sys

import uvicorn

from affect_chat.config import get_settings
from affect_chat.logger import setup_logging
from affect_chat.models import AgeGroup


async def _chat_loop(age_group: AgeGroup) -> None:
    """Interactive text conversation using the same engine as the server."""
    from affect_chat.engine import Engine

    engine = Engine()
    states = await engine.start()
    session = engine.create_session(age_group)
    print(f"Backends: {', '.join(f'{b.value}={s.value}' for b, s in states.items())}")
    print("Type a message (empty line or Ctrl-D to quit).")
    for m in session.messages:
        print(f"assistant> {m.content}")
    try:
        while True:
            try:
                text = await asyncio.to_thread(input, "you> ")
            except EOFError:
                break
            if not text.strip():
                break
            reply = await engine.send(session, text)
            if reply is not None:
                print(f"assistant> {reply.content}")
    finally:
        await engine.stop()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="affect-chat",
        description="Emotional-support chat with stabilised affect signals.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── serve ─────────────────────────────────────────────────
    serve_parser = sub.add_parser("serve", help="Start the API server.")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.add_argument("--reload", action="store_true")

    # ── chat ──────────────────────────────────────────────────
    chat_parser = sub.add_parser("chat", help="Chat in the terminal.")
    chat_parser.add_argument(
        "--age-group",
        choices=[a.value for a in AgeGroup],
        default=None,
    )

    args = parser.parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level)

    if args.command == "serve":
        uvicorn.run(
            "affect_chat.api.server:app",
            host=args.host or settings.api_host,
            port=args.port or settings.api_port,
            reload=args.reload,
        )
    elif args.command == "chat":
        age_group = AgeGroup(args.age_group or settings.default_age_group)
        asyncio.run(_chat_loop(age_group))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
