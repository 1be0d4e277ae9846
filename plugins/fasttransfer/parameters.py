"""
Command Line Construction Module

This module turns an ordered table of command-line options into the argument
vector passed to the external binary, plus a parallel vector that is safe to
write to logs (secret values replaced by a fixed marker).

Each option is one of three kinds:
- VALUE: emitted as "--flag value"
- FLAG: emitted as a bare "--flag" when true, omitted otherwise
- SECRET: emitted like VALUE, but redacted in the log vector

Values are resolved late through a RenderContext, so Airflow templates such
as "{{ ds }}" are interpolated only when the task actually runs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union
import logging

logger = logging.getLogger(__name__)

REDACTION_MARKER = "*******"


class ParameterKind(Enum):
    """How an option is rendered on the command line."""

    VALUE = "value"
    FLAG = "flag"
    SECRET = "secret"


@dataclass(frozen=True)
class ParameterEntry:
    """
    One declared command-line option.

    Attributes:
        flag: Option name passed through verbatim (e.g. "--sourceserver")
        kind: Rendering kind
        source: Raw value or late-bound value source, resolved at build time
    """

    flag: str
    kind: ParameterKind
    source: Any = None


class ParameterSpec:
    """
    Ordered, flag-unique collection of ParameterEntry objects.

    Declaration order is the order of the emitted argument vector.
    """

    def __init__(self, entries: Iterable[Union[ParameterEntry, Tuple[str, ParameterKind, Any]]] = ()):
        self._entries: List[ParameterEntry] = []
        self._flags: Dict[str, int] = {}
        for entry in entries:
            if not isinstance(entry, ParameterEntry):
                entry = ParameterEntry(*entry)
            self.add(entry)

    def add(self, entry: ParameterEntry) -> None:
        """
        Append an entry.

        Raises:
            ValueError: If the flag is empty or already declared
        """
        if not entry.flag:
            raise ValueError("Invalid parameter: flag name cannot be empty")
        if entry.flag in self._flags:
            raise ValueError(f"Duplicate parameter flag '{entry.flag}'")
        if not isinstance(entry.kind, ParameterKind):
            raise ValueError(f"Invalid kind for '{entry.flag}': {entry.kind!r}")
        self._flags[entry.flag] = len(self._entries)
        self._entries.append(entry)

    def get(self, flag: str) -> Optional[ParameterEntry]:
        index = self._flags.get(flag)
        return self._entries[index] if index is not None else None

    def flags(self) -> List[str]:
        return [e.flag for e in self._entries]

    def __iter__(self) -> Iterator[ParameterEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, flag: object) -> bool:
        return flag in self._flags


@dataclass(frozen=True)
class Template:
    """A string to render against the run-time context when the task runs."""

    text: str


class RenderContext:
    """
    Resolves a parameter's value source to a concrete value.

    Subclasses return a str, int, bool or None ("not provided").
    """

    def resolve(self, source: Any) -> Any:
        raise NotImplementedError


class StaticRenderContext(RenderContext):
    """
    Resolves without a run-time context.

    Callables are called with no arguments and Template text is used as-is.
    """

    def resolve(self, source: Any) -> Any:
        if callable(source):
            return source()
        if isinstance(source, Template):
            return source.text
        return source


class TemplateRenderContext(RenderContext):
    """
    Airflow adapter: renders Template sources against a task context.

    Plain values pass through untouched, so values that were already
    rendered (or came from a connection) are never interpolated twice.

    Args:
        render: Function taking (text, context), normally
                BaseOperator.render_template
        context: Airflow task context
    """

    def __init__(self, render: Callable[[Any, Dict[str, Any]], Any], context: Dict[str, Any]):
        self._render = render
        self._context = context

    def resolve(self, source: Any) -> Any:
        if callable(source):
            return source()
        if isinstance(source, Template):
            return self._render(source.text, self._context)
        return source


@dataclass(frozen=True)
class CommandLine:
    """Execution vector and its log-safe counterpart."""

    argv: Tuple[str, ...]
    log_argv: Tuple[str, ...]

    def display(self) -> str:
        """Single line for the task log, secrets redacted."""
        return " ".join(self.log_argv)


def render_value(value: Any) -> Optional[str]:
    """
    Render a resolved value to its canonical string form.

    Examples:
        >>> render_value(True)
        'true'
        >>> render_value(1048576)
        '1048576'
        >>> render_value(None) is None
        True
    """
    if value is None:
        return None
    # bool first: bool is a subclass of int
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(int(value))
    if isinstance(value, str):
        return value
    return str(value)


def is_true(rendered: Optional[str]) -> bool:
    """Case-insensitive match against "true"; anything else is false."""
    return rendered is not None and rendered.lower() == "true"


def build_command(
    executable_path: str,
    spec: ParameterSpec,
    context: Optional[RenderContext] = None,
) -> CommandLine:
    """
    Build the argument vector and the redacted log vector.

    Options whose rendered value is None or empty are omitted, whatever
    their kind. FLAG options are emitted alone and only when true.

    Args:
        executable_path: Path of the staged executable (element 0)
        spec: Ordered option table
        context: Resolver for value sources (default: StaticRenderContext)

    Returns:
        CommandLine with argv and log_argv of equal length
    """
    context = context or StaticRenderContext()
    argv = [executable_path]
    log_argv = [executable_path]

    for entry in spec:
        value = render_value(context.resolve(entry.source))

        if value is None or value == "":
            continue

        if entry.kind is ParameterKind.FLAG:
            if is_true(value):
                argv.append(entry.flag)
                log_argv.append(entry.flag)
            continue

        argv.extend([entry.flag, value])
        if entry.kind is ParameterKind.SECRET:
            log_argv.extend([entry.flag, REDACTION_MARKER])
        else:
            log_argv.extend([entry.flag, value])

    logger.debug(f"Built command with {len(argv) - 1} arguments from {len(spec)} declared options")
    return CommandLine(argv=tuple(argv), log_argv=tuple(log_argv))
