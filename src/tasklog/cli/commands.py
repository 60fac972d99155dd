# src/tasklog/cli/commands.py

"""
Command grammar and command -> effects translation.

Grammar (argv after the program name):
- REFS... [show|done|cancel|delete|edit FLAGS...]
- VERB REFS... [FLAGS...]        (same commands, verb first)
- [list] [FLAGS...]
- add WORDS... [FLAGS...]
- help

Handlers never mutate the model directly: they resolve references, return
effects, and CommandRegistry.execute applies them in order.
"""

from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from itertools import takewhile

from ..core.state import AppState
from ..tasks.effects import AddTask, ChangeTaskPriority, ChangeTaskState, ChangeTaskTags, DeleteTask, Effect
from ..tasks.flags import Flag, PriorityFlag, TagFlag, parse_flag
from ..tasks.model import FindTaskError
from ..tasks.task_models import Task, TaskState, utc_now
from ..tasks.task_ref import TaskRef, TaskRefError, is_task_ref, parse_task_ref
from .printer import describe_effect, format_task_details, print_table, task_row, terminal_size

logger = logging.getLogger(__name__)


class CommandParseError(ValueError):
    """The command line does not form a valid command."""


@dataclass(frozen=True, slots=True)
class Command:
    name: str
    refs: tuple[TaskRef, ...] = ()
    flags: tuple[Flag, ...] = ()
    title: str = ""


CommandHandler = Callable[[AppState, Command], list[Effect]]
CommandParser = Callable[[str, tuple[TaskRef, ...], list[str]], Command]


def emit(state: AppState, text: str) -> None:
    out = state.out if state.out is not None else sys.stdout
    out.write(text + "\n")


# ---- parameter parsers ----


def _parse_flags(params: Sequence[str]) -> list[Flag]:
    flags: list[Flag] = []
    for p in params:
        flag = parse_flag(p)
        if flag is None:
            raise CommandParseError(f"Found invalid flag {p!r}")
        flags.append(flag)
    return flags


def parse_no_params(name: str, refs: tuple[TaskRef, ...], params: list[str]) -> Command:
    if params:
        if refs and not is_task_ref(params[0]):
            # A trailing word after the references is most likely a mistyped one.
            raise TaskRefError(params[0])
        raise CommandParseError(f"Unexpected arguments for {name}: {' '.join(params)}")
    return Command(name, refs=refs)


def parse_list(name: str, refs: tuple[TaskRef, ...], params: list[str]) -> Command:
    return Command(name, flags=tuple(_parse_flags(params)))


def parse_add(name: str, refs: tuple[TaskRef, ...], params: list[str]) -> Command:
    """Arguments that parse as flags are flags; everything else forms the title."""
    flags: list[Flag] = []
    words: list[str] = []
    for p in params:
        flag = parse_flag(p)
        if flag is None:
            words.append(p)
        else:
            flags.append(flag)

    title = " ".join(words).strip()
    if not title:
        raise CommandParseError("Failed to parse parameters: a task needs a title")
    return Command(name, flags=tuple(flags), title=title)


def parse_edit(name: str, refs: tuple[TaskRef, ...], params: list[str]) -> Command:
    flags = _parse_flags(params)
    if not flags:
        refs_s = ", ".join(str(r) for r in refs)
        raise CommandParseError(f"Got no changes for task(s) {refs_s}")

    added = {f.tag for f in flags if isinstance(f, TagFlag) and f.positive}
    removed = {f.tag for f in flags if isinstance(f, TagFlag) and not f.positive}
    overlap = added & removed
    if overlap:
        raise CommandParseError(f"Tags both added and removed: {', '.join(sorted(overlap))}")
    return Command(name, refs=refs, flags=tuple(flags))


# ---- registry ----


class CommandRegistry:
    """Maps command names (and aliases) to their parser and handler."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._parsers: dict[str, CommandParser] = {}
        self._uses_refs: dict[str, bool] = {}
        self._aliases: dict[str, str] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        *,
        parser: CommandParser = parse_no_params,
        uses_refs: bool = False,
        aliases: list[str] | None = None,
    ) -> None:
        key = name.lower()
        self._handlers[key] = handler
        self._parsers[key] = parser
        self._uses_refs[key] = uses_refs
        self._help[key] = help_text
        self._aliases[key] = key
        for alias in aliases or []:
            self._aliases[alias.lower()] = key

    def resolve(self, verb: str) -> str | None:
        return self._aliases.get(verb.lower())

    def parse(self, args: Sequence[str]) -> Command:
        """
        Turn argv into a Command.

        Raises CommandParseError (or TaskRefError) for malformed input.
        """
        args = list(args)
        refs = tuple(parse_task_ref(a) for a in takewhile(is_task_ref, args))
        rest = args[len(refs):]

        if refs:
            verb = rest[0] if rest else "show"
            name = self.resolve(verb)
            if name is None or not self._uses_refs[name]:
                raise CommandParseError(f"Unknown command {verb}")
            logger.debug("Parsed refs %s for command %s", refs, name)
            return self._parsers[name](name, refs, rest[1:])

        if not rest:
            return Command("list")

        name = self.resolve(rest[0])
        if name is None:
            # Bare flags are a filtered listing: `tasklog +work p:h`
            if all(parse_flag(a) is not None for a in rest):
                return Command("list", flags=tuple(_parse_flags(rest)))
            raise CommandParseError(f"Unknown command {rest[0]}")

        params = rest[1:]
        if self._uses_refs[name]:
            refs = tuple(parse_task_ref(a) for a in takewhile(is_task_ref, params))
            if not refs:
                if params:
                    raise TaskRefError(params[0])
                raise CommandParseError(f"{name} needs at least one task reference")
            params = params[len(refs):]

        return self._parsers[name](name, refs, params)

    def execute(self, state: AppState, command: Command) -> list[Effect]:
        """Run the handler, then apply and report its effects in order."""
        handler = self._handlers.get(command.name)
        if handler is None:
            raise CommandParseError(f"Unknown command {command.name}")

        logger.info("Command %s (scope=%s)", command, state.scope)
        effects = handler(state, command)
        for effect in effects:
            logger.info("Applying effect %r", effect)
            state.model.apply(effect)
            emit(state, describe_effect(effect, state.model))
        return effects

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  {name:<8} {help_text}")
        lines.append("")
        lines.append("Task references: full uuid, 6-character short id, or the number shown by list.")
        lines.append("Flags: priority:<l|d|h> (or p:h), +tag, -tag.")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- handlers ----


def _resolve(state: AppState, refs: Sequence[TaskRef]) -> list[Task]:
    """
    Resolve each reference independently.

    Failures are reported and recorded; resolved tasks are returned without
    duplicates so a batch never emits two effects for the same task.
    """
    tasks: list[Task] = []
    seen: set[uuid.UUID] = set()
    for ref in refs:
        try:
            task = state.model.find(state.scope, ref)
        except FindTaskError as exc:
            logger.info("Failed to resolve %s: %s", ref, exc)
            state.failures.append(str(exc))
            emit(state, str(exc))
            continue
        if task.id in seen:
            continue
        seen.add(task.id)
        tasks.append(task)
    return tasks


def cmd_list(state: AppState, command: Command) -> list[Effect]:
    flags: list[Flag] = list(command.flags)
    if state.scope_tag is not None:
        flags.append(TagFlag(state.scope_tag))

    if flags:
        emit(state, f"Listing all tasks with flags {', '.join(str(f) for f in flags)}")

    now = utc_now()
    tasks = [
        t for t in state.model.all_tasks(now) if t.is_open() and all(f.matches(t) for f in flags)
    ]
    # Numbers must match the rows about to be shown.
    state.model.recalculate_numbers(state.scope, [t.id for t in tasks])

    if not tasks:
        emit(state, "No matching tasks found")
        return []

    columns, lines = terminal_size()
    limit = state.list_limit or max(1, lines - 4)
    rows = [task_row(t, str(n), now) for n, t in enumerate(tasks[:limit], start=1)]

    out = state.out if state.out is not None else sys.stdout
    print_table(out, rows, width_limit=max(40, columns - 1))
    if len(tasks) > len(rows):
        emit(state, f"There are {len(tasks) - len(rows)} more tasks")
    return []


def cmd_show(state: AppState, command: Command) -> list[Effect]:
    for ref in command.refs:
        tasks = _resolve(state, [ref])
        if not tasks:
            continue
        task = tasks[0]
        if state.scope_tag is not None and state.scope_tag not in task.tags:
            emit(state, f"Note: Task {ref} isn't in scope {state.scope}")
        emit(state, format_task_details(task, str(ref)))
    return []


def cmd_add(state: AppState, command: Command) -> list[Effect]:
    tags = [state.scope_tag] if state.scope_tag is not None else []
    task = Task.new(command.title, tags)
    for flag in command.flags:
        flag.apply_to(task)
    return [AddTask(task)]


def _close(state: AppState, command: Command, new_state: TaskState) -> list[Effect]:
    effects: list[Effect] = []
    for task in _resolve(state, command.refs):
        if not task.is_open():
            emit(state, f"Task {task.short_id()} is already {task.status.kind.value}")
            continue
        effects.append(ChangeTaskState(task.id, new_state))
    return effects


def cmd_done(state: AppState, command: Command) -> list[Effect]:
    return _close(state, command, TaskState.done())


def cmd_cancel(state: AppState, command: Command) -> list[Effect]:
    return _close(state, command, TaskState.canceled())


def cmd_delete(state: AppState, command: Command) -> list[Effect]:
    return [DeleteTask(task.id) for task in _resolve(state, command.refs)]


def cmd_edit(state: AppState, command: Command) -> list[Effect]:
    priority = None
    added: set[str] = set()
    removed: set[str] = set()
    for flag in command.flags:
        if isinstance(flag, PriorityFlag):
            priority = flag.priority
        elif flag.positive:
            added.add(flag.tag)
        else:
            removed.add(flag.tag)

    effects: list[Effect] = []
    for task in _resolve(state, command.refs):
        if priority is not None and priority is not task.priority:
            effects.append(ChangeTaskPriority(task.id, priority))

        # Only real changes; an edit that changes nothing emits nothing.
        to_add = added - task.tags
        to_remove = removed & task.tags
        if to_add or to_remove:
            effects.append(ChangeTaskTags.of(task.id, added=to_add, removed=to_remove))
    return effects


def cmd_help(state: AppState, command: Command) -> list[Effect]:
    emit(state, registry.build_help())
    return []


registry.register("list", cmd_list, "List open tasks: list [+tag] [-tag] [p:h]", parser=parse_list, aliases=["ls"])
registry.register("show", cmd_show, "Show task details: REF... [show]", uses_refs=True)
registry.register("add", cmd_add, "Add a task: add TITLE... [+tag] [p:h]", parser=parse_add)
registry.register("done", cmd_done, "Mark tasks done: REF... done", uses_refs=True)
registry.register("cancel", cmd_cancel, "Cancel tasks: REF... cancel", uses_refs=True)
registry.register("delete", cmd_delete, "Delete tasks: REF... delete", uses_refs=True, aliases=["del", "rm"])
registry.register(
    "edit", cmd_edit, "Change tags/priority: REF... edit [+tag] [-tag] [p:h]", parser=parse_edit, uses_refs=True
)
registry.register("help", cmd_help, "Show available commands.", aliases=["-h", "--help"])
