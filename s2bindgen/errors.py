import contextvars
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence


_CURRENT_SCHEMA_PATH: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "s2bindgen_current_schema_path", default=None
)
_CURRENT_SCHEMA_LINES: contextvars.ContextVar[Optional[Sequence[str]]] = (
    contextvars.ContextVar("s2bindgen_current_schema_lines", default=None)
)
_CURRENT_LINE_NO: contextvars.ContextVar[Optional[int]] = contextvars.ContextVar(
    "s2bindgen_current_line_no", default=None
)


def _line_from_source(lines: Sequence[str], line_no: int) -> Optional[str]:
    if line_no <= 0 or line_no > len(lines):
        return None
    return lines[line_no - 1].strip()


def _format_with_context(
    message: str,
    *,
    path: Optional[str] = None,
    line_no: Optional[int] = None,
) -> str:
    path = path if path is not None else _CURRENT_SCHEMA_PATH.get()
    line_no = line_no if line_no is not None else _CURRENT_LINE_NO.get()
    if line_no is None:
        if path is None:
            return message
        return f"{message}\nLocation: {path}"

    details = [f"Location: {path or '<schema>'}, line {line_no}"]
    lines = _CURRENT_SCHEMA_LINES.get()
    if lines is not None:
        code = _line_from_source(lines, line_no)
        if code:
            details.append(f"Code: {code}")
    return f"{message}\n" + "\n".join(details)


def format_schema_diagnostic(message: str, *, line_no: Optional[int] = None) -> str:
    """Attach best-effort schema location to a warning/info diagnostic string."""
    return _format_with_context(message, line_no=line_no)


@contextmanager
def schema_source_context(path: Optional[str], lines: Sequence[str]) -> Iterator[None]:
    path_token = _CURRENT_SCHEMA_PATH.set(path)
    lines_token = _CURRENT_SCHEMA_LINES.set(lines)
    try:
        yield
    finally:
        _CURRENT_SCHEMA_LINES.reset(lines_token)
        _CURRENT_SCHEMA_PATH.reset(path_token)


@contextmanager
def schema_line_context(line_no: Optional[int]) -> Iterator[None]:
    token = _CURRENT_LINE_NO.set(line_no)
    try:
        yield
    finally:
        _CURRENT_LINE_NO.reset(token)


class CodegenError(Exception):
    """Base generator error."""


class SchemaError(CodegenError):
    """Raised when schema content cannot be turned into bindings."""

    def __init__(self, message: str, *, line_no: Optional[int] = None):
        super().__init__(_format_with_context(message, line_no=line_no))


class NativeSchemaError(SchemaError):
    """Raised when a native signature uses an unknown type token."""


class SchemaSourceError(CodegenError):
    """Raised when a schema input is missing and no cached copy exists."""


class DescriptorLoadError(CodegenError):
    """Raised when the external proto compiler rejects the input files."""


class EventHashCollisionWarning(UserWarning):
    """Two generated events share the same 32-bit identity hash."""


class NetMessageCorrelationWarning(UserWarning):
    """A network message enum value has no matching message type."""
