# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Common prompt_toolkit components shared between cli.py and ctl.py.

This module provides syntax highlighting, tab completion, styling, and
the InteractiveSession class for the garage door command-line interfaces.
"""

from pathlib import Path
from typing import Any, AsyncIterator, Callable, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.history import FileHistory, History, InMemoryHistory
from prompt_toolkit.lexers import Lexer
from prompt_toolkit.styles import Style

from .commands.base import get_command_registry

# Import CommandHandler so every command module is loaded and the
# @command decorators populate the registry before ctl.py uses it.
from .commands.handler import CommandHandler  # noqa: F401

# History file paths
CLI_HISTORY_FILE = Path.home() / ".garagedoor_history"
CTL_HISTORY_FILE = Path.home() / ".garagedoor_ctl_history"

GARAGE_DOOR_STYLE = Style.from_dict(
    {
        "command": "#00aa00 bold",
        "alias": "#00aa00",
        "option": "#ff8800",
        "number": "#aa00aa",
        # Prompt - connected (white) vs disconnected (gray)
        "prompt.connected": "#ffffff bold",
        "prompt.disconnected": "#888888",
    }
)


def _is_number(word: str) -> bool:
    try:
        float(word)
    except ValueError:
        return False
    return True


def _command_words() -> tuple[set[str], set[str], set[str]]:
    """Collect command names, aliases and argument options from the registry."""
    commands: set[str] = set()
    aliases: set[str] = set()
    options: set[str] = set()
    for key, info in get_command_registry().items():
        if key == info.name:
            commands.add(key)
        else:
            aliases.add(key)
        for arg in info.args:
            if arg.arg_type == "bool_toggle":
                options.update(["on", "off"])
            elif arg.choices:
                options.update(c.lower() for c in arg.choices)
    return commands, aliases, options


class GarageDoorLexer(Lexer):
    """Syntax highlighter for garage door commands."""

    def lex_document(self, document):
        """Return a lexer function for the document."""
        commands, aliases, options = _command_words()

        def get_line_tokens(line_number):
            line = document.lines[line_number]
            tokens = []
            pos = 0

            for i, word in enumerate(line.split()):
                start = line.find(word, pos)
                if start > pos:
                    tokens.append(("", line[pos:start]))

                if i == 0 and word.lower() in commands:
                    tokens.append(("class:command", word))
                elif i == 0 and word.lower() in aliases:
                    tokens.append(("class:alias", word))
                elif i > 0 and _is_number(word):
                    tokens.append(("class:number", word))
                elif i > 0 and word.lower() in options:
                    tokens.append(("class:option", word))
                else:
                    tokens.append(("", word))

                pos = start + len(word)

            if pos < len(line):
                tokens.append(("", line[pos:]))
            return tokens

        return get_line_tokens


class GarageDoorCompleter(Completer):
    """Tab completion for garage door commands."""

    def _get_commands(self) -> list[tuple[str, str]]:
        """Get all command names and aliases with descriptions."""
        commands = []
        for key, info in get_command_registry().items():
            if key == info.name:
                commands.append((key, info.description))
            else:
                commands.append((key, f"Alias for {info.name}"))
        return sorted(commands, key=lambda x: x[0])

    def _get_arg_options(self, cmd: str) -> list[tuple[str, str]]:
        info = get_command_registry().get(cmd)
        if not info or not info.args:
            return []
        arg = info.args[0]
        if arg.arg_type == "bool_toggle":
            return [("on", "Enable"), ("off", "Disable")]
        elif arg.choices:
            return [(c.lower(), c) for c in arg.choices]
        return [("help", "Show help for this command")]

    def get_completions(self, document, complete_event):
        """Generate completions for the current input."""
        text = document.text_before_cursor
        words = text.split()

        if not text or text.endswith(" "):
            word_before = ""
            completed_words = words
        else:
            word_before = words[-1] if words else ""
            completed_words = words[:-1] if words else []

        if not completed_words:
            candidates = self._get_commands()
        elif len(completed_words) == 1:
            candidates = self._get_arg_options(completed_words[0].lower())
        else:
            candidates = []

        for name, desc in candidates:
            if name.startswith(word_before.lower()):
                yield Completion(
                    name,
                    start_position=-len(word_before),
                    display_meta=desc,
                )


def make_history(history_file: Optional[str] = None) -> History:
    """Build prompt_toolkit history.

    Args:
        history_file: Path to history file, or None/"none" for in-memory only.
    """
    if history_file is None or str(history_file).lower() == "none":
        return InMemoryHistory()
    return FileHistory(str(history_file))


class InteractiveSession:
    """Manages an interactive prompt session with history.

    Usage:
        session = InteractiveSession.create(
            host="127.0.0.1",
            port=3013,
            history_file="/path/to/history",
        )

        async for line in session.input_loop():
            result = await execute_command(line)
            if result.message:
                print(session.format_output(result.message))
    """

    def __init__(
        self,
        history_file: Optional[str] = None,
        get_prompt: Optional[Callable[[], Any]] = None,
        prompt_text: str = "> ",
    ):
        """Initialize the interactive session.

        Args:
            history_file: Path to history file, "none" or None for in-memory.
            get_prompt: Optional callable returning the prompt (may return
                FormattedText). If None, uses prompt_text.
            prompt_text: Simple string prompt.
        """
        self._prompt_text = prompt_text
        self._get_prompt = get_prompt
        self.history = make_history(history_file)
        self._session = PromptSession(
            history=self.history,
            completer=GarageDoorCompleter(),
            complete_while_typing=False,
            lexer=GarageDoorLexer(),
            style=GARAGE_DOOR_STYLE,
            auto_suggest=AutoSuggestFromHistory(),
            enable_history_search=True,
        )

    @classmethod
    def create(
        cls,
        host: str,
        port: int,
        history_file: Optional[str] = None,
        is_connected: Optional[Callable[[], bool]] = None,
    ) -> "InteractiveSession":
        """Create an InteractiveSession with standard prompt formatting.

        When is_connected is provided, the prompt color follows it.
        """
        prompt_text = f"{host}:{port}> "

        get_prompt = None
        if is_connected is not None:

            def get_prompt():
                style = "class:prompt.connected" if is_connected() else "class:prompt.disconnected"
                return FormattedText([(style, prompt_text)])

        return cls(
            history_file=history_file,
            get_prompt=get_prompt,
            prompt_text=prompt_text,
        )

    @staticmethod
    def format_output(message: str) -> str:
        """Prefix command output so it stands out from log lines."""
        return f">>> {message}"

    async def prompt_async(self) -> Optional[str]:
        """Get input from the user.

        Returns:
            The stripped input line, or None on EOF.
        """
        try:
            prompt = self._get_prompt() if self._get_prompt else self._prompt_text
            line = await self._session.prompt_async(prompt)
            return line.strip() if line else ""
        except EOFError:
            return None
        except KeyboardInterrupt:
            return ""

    async def input_loop(
        self,
        stop_check: Optional[Callable[[], bool]] = None,
    ) -> AsyncIterator[str]:
        """Yield non-empty input lines until EOF or stop_check returns True."""
        while True:
            if stop_check and stop_check():
                break

            line = await self.prompt_async()
            if line is None:
                break
            if not line:
                continue
            yield line
