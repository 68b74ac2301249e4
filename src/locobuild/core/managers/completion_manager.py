import logging
import re
from typing import Iterable

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from locobuild.core.command_registry import CommandRegistry
from locobuild.core.compiler import CompiledCommand
from locobuild.core.context.scope import RESERVED_PREFIX, Scope

logger = logging.getLogger(__name__)

# Regex to find the last operator *before* the cursor
OPERATOR_PATTERN = re.compile(r"(\s+(?:&&|\|\||;)\s+)")


class CompletionManager:
    """
    Generates completion suggestions for the interactive shell: command names
    at the start of each segment, ``{variable}`` placeholders elsewhere.
    """

    def __init__(self, registry: CommandRegistry, scope: Scope):
        self.registry = registry
        self.scope = scope

    def generate_completions(self, document: Document) -> Iterable[Completion]:
        text_before_cursor = document.text_before_cursor

        last_op_match = None
        for match in OPERATOR_PATTERN.finditer(text_before_cursor):
            last_op_match = match
        segment_start_index = last_op_match.end() if last_op_match else 0

        relevant_text = text_before_cursor[segment_start_index:]
        words_in_segment = relevant_text.lstrip().split()
        word_before_cursor = document.get_word_before_cursor(WORD=True)

        if "{" in word_before_cursor:
            yield from self._get_variable_completions(word_before_cursor)
            return

        is_completing_first_word = (
            len(words_in_segment) == 0 or
            (len(words_in_segment) == 1 and not relevant_text.endswith(" "))
        )
        if is_completing_first_word:
            yield from self._get_command_completions(word_before_cursor)

    def _get_command_completions(self, word_before_cursor: str) -> Iterable[Completion]:
        start_pos = -len(word_before_cursor)
        for name in self.registry.names():
            if name.startswith(word_before_cursor):
                command = self.registry.get(name)
                meta = command.description if isinstance(command, CompiledCommand) else "Builtin"
                yield Completion(name, start_position=start_pos, display_meta=meta or "Command")

    def _get_variable_completions(self, word_before_cursor: str) -> Iterable[Completion]:
        prefix = word_before_cursor[word_before_cursor.rindex("{"):]
        start_pos = -len(prefix)
        for var_name in sorted(self.scope):
            if var_name.startswith(RESERVED_PREFIX):
                continue
            suggestion = f"{{{var_name}}}"
            if suggestion.startswith(prefix):
                yield Completion(suggestion, start_position=start_pos, display_meta="Variable")


class PromptToolkitCompleter(Completer):
    """
    A wrapper that uses the CompletionManager to generate suggestions
    in a way that prompt_toolkit expects.
    """

    def __init__(self, manager: CompletionManager):
        self.manager = manager

    def get_completions(self, document: Document, complete_event):
        yield from self.manager.generate_completions(document)
