"""REPL with prompt_toolkit for user interaction."""

import os
import sys

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import InMemoryHistory

from vaultcli.commands import dispatch_command, get_client
from vaultcli.config import Config
from vaultcli.constants import (
    COMMANDS,
    HELP_TEXT,
    LOGO,
    PROMPT_TEXT,
    STYLE,
    WELCOME_HELP,
    WELCOME_TITLE,
)
from vaultcli.parser import ParseError, parse_command


def clear_screen() -> None:
    """Clear the terminal screen (cross-platform)."""
    if sys.platform == "win32":
        os.system("cls")
    else:
        os.system("clear")


def show_welcome() -> None:
    print(LOGO)
    print(WELCOME_TITLE)
    print(WELCOME_HELP)


def make_toolbar(config: Config):
    """
    Build a bottom toolbar showing the vault URL and last logged-in user.
    """
    def toolbar():
        user = config.get_username() or "not logged in"
        return [("class:toolbar", f" {config.get_base_url()}  |  {user} ")]

    return toolbar


def _redraw() -> None:
    clear_screen()
    show_welcome()


BUILTINS = {
    "help": lambda: print(HELP_TEXT),
    "clear": _redraw,
}


def repl_loop() -> None:
    """Start interactive REPL with prompt_toolkit."""
    session: PromptSession = PromptSession(
        completer=WordCompleter(COMMANDS, ignore_case=True),
        history=InMemoryHistory(),
        style=STYLE,
        bottom_toolbar=make_toolbar(get_client().config),
    )

    _redraw()

    while True:
        try:
            command = session.prompt([("class:prompt", PROMPT_TEXT)]).strip()
        except KeyboardInterrupt:
            continue
        except EOFError:
            print("\nGoodbye!")
            break

        if not command:
            continue
        if command == "exit":
            print("Goodbye!")
            break
        if command in BUILTINS:
            BUILTINS[command]()
            continue

        try:
            print(dispatch_command(parse_command(command)))
        except ParseError as e:
            print(f"Error: {e}")
        except KeyboardInterrupt:
            print("\nInterrupted.")
