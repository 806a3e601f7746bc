#!/usr/bin/env python3
"""
Freewrite Chat - Talk to an AI about your journal entry
=======================================================

Usage:
    python main.py --journal today.md                 # Chat with ChatGPT
    python main.py --journal today.md --provider claude
    python main.py --conversation <id> --history      # Show a saved conversation
    python main.py --conversation <id> --clear        # Forget a conversation
    python main.py --cleanup                          # Drop conversations past retention
"""

import argparse
import asyncio
import sys
import uuid
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from core.errors import APIError, ErrorHandler
from core.service import ConversationService
from infra import ChatConfig, ConfigManager, CredentialStore, configure_logging
from memory import AIProvider

console = Console()


def print_banner(provider: AIProvider, conversation_id: str) -> None:
    banner = Text()
    banner.append("Freewrite Chat", style="bold cyan")
    banner.append(" - reflect on your journal entry\n", style="dim")
    banner.append(f"Provider: {provider.display_name}\n", style="green")
    banner.append(f"Conversation: {conversation_id}\n\n", style="dim")
    banner.append("Type ", style="dim")
    banner.append("quit", style="bold red")
    banner.append(" to exit", style="dim")

    console.print(Panel(banner, title="Welcome", border_style="blue"))


def print_history(service: ConversationService, conversation_id: str) -> None:
    messages = service.get_conversation_history(conversation_id)
    if not messages:
        console.print("[dim]No saved messages for this conversation.[/dim]")
        return

    for message in messages:
        style = "bold blue" if message.is_user else "bold green"
        stamp = message.timestamp.strftime("%Y-%m-%d %H:%M")
        console.print(f"[{style}]{message.speaker}[/{style}] [dim]{stamp}[/dim]")
        console.print(message.content)
        console.print()


def read_journal(path: Optional[str]) -> str:
    if not path:
        return ""
    return Path(path).expanduser().read_text(encoding="utf-8")


async def run_chat(
    service: ConversationService,
    provider: AIProvider,
    journal_entry: str,
    conversation_id: str,
) -> None:
    """Read messages from stdin until the user quits."""
    errors = ErrorHandler()
    print_banner(provider, conversation_id)

    while True:
        try:
            text = console.input("[bold blue]You:[/bold blue] ").strip()
        except (EOFError, KeyboardInterrupt):
            console.print()
            break

        if not text:
            continue
        if text.lower() in ("quit", "exit"):
            break

        try:
            with console.status("Thinking..."):
                reply = await service.send_message(
                    text, provider, journal_entry, conversation_id
                )
        except APIError as e:
            console.print(f"[bold red]Error:[/bold red] {errors.handle(e)}")
            continue

        console.print(Panel(reply, title=provider.display_name, border_style="green"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Chat with an AI about a journal entry")
    parser.add_argument("--journal", help="Path to the journal entry text")
    parser.add_argument(
        "--provider",
        choices=[p.name.lower() for p in AIProvider],
        default="chatgpt",
        help="Chat provider (default: chatgpt)",
    )
    parser.add_argument("--conversation", help="Conversation id (default: new UUID)")
    parser.add_argument("--config", default="config.yaml", help="Path to config file")
    parser.add_argument("--history", action="store_true", help="Print the conversation and exit")
    parser.add_argument("--clear", action="store_true", help="Delete the conversation and exit")
    parser.add_argument("--cleanup", action="store_true", help="Delete conversations past retention and exit")
    parser.add_argument("--log-level", default="WARNING", help="Console log level")
    return parser


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level)

    manager = ConfigManager(args.config)
    config = ChatConfig.from_manager(manager)
    service = ConversationService(
        config=config,
        credentials=CredentialStore(manager=manager),
    )

    conversation_id = args.conversation or str(uuid.uuid4())
    provider = AIProvider.parse(args.provider)

    try:
        if args.cleanup:
            removed = service.cleanup_old_conversations().result()
            console.print(f"Removed {removed} conversations older than {config.retention_days} days.")
            return 0

        if args.clear:
            if not args.conversation:
                console.print("[red]--clear needs --conversation[/red]")
                return 2
            service.clear_conversation(conversation_id)
            console.print(f"Cleared conversation {conversation_id}.")
            return 0

        if args.history:
            if not args.conversation:
                console.print("[red]--history needs --conversation[/red]")
                return 2
            print_history(service, conversation_id)
            return 0

        journal_entry = read_journal(args.journal)
        asyncio.run(run_chat(service, provider, journal_entry, conversation_id))
        return 0
    finally:
        service.close()


if __name__ == "__main__":
    sys.exit(main())
