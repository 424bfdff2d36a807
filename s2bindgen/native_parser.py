from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from s2bindgen.errors import (
    NativeSchemaError,
    format_schema_diagnostic,
    schema_line_context,
    schema_source_context,
)
from s2bindgen.model import NativeClass, NativeFunctionSignature, NativeParameter
from s2bindgen.typesys import NATIVE_PARAM_TYPES

logger = logging.getLogger(__name__)

SYNC_MARKER = "sync "
NO_PARAMS = "void"


def split_by_last_dot(value: str) -> Tuple[str, str]:
    idx = value.rfind(".")
    if idx == -1:
        return "", value
    return value[:idx], value[idx + 1:]


class NativeSignatureParser:
    """Parses one ``.native`` file.

    The first line names the generated class (``<keyword> dotted.Path``);
    every following line is either blank, a ``//`` comment, or::

        [sync] <returnType> <name> = <type> <param>, ... [// comment]

    Lines of any other shape are skipped. A well-formed line that uses an
    unknown type token raises :class:`NativeSchemaError`.
    """

    def parse(self, text: str, source_name: Optional[str] = None) -> Optional[NativeClass]:
        lines = text.splitlines()
        if not lines:
            return None

        with schema_source_context(source_name, lines):
            namespace, class_name = self._parse_header(lines[0])
            functions: List[NativeFunctionSignature] = []
            for line_no, raw in enumerate(lines[1:], start=2):
                with schema_line_context(line_no):
                    signature = self._parse_function(raw)
                if signature is not None:
                    functions.append(signature)

        return NativeClass(namespace=namespace, class_name=class_name, functions=functions)

    def parse_file(self, path: Path) -> Optional[NativeClass]:
        return self.parse(Path(path).read_text(encoding="utf-8"), source_name=str(path))

    def _parse_header(self, raw: str) -> Tuple[str, str]:
        parts = raw.split()
        if len(parts) < 2:
            raise NativeSchemaError(
                "Native file must start with '<keyword> <dotted.ClassPath>'.",
                line_no=1,
            )
        return split_by_last_dot(parts[1].strip())

    def _parse_function(self, raw: str) -> Optional[NativeFunctionSignature]:
        line = raw.strip()
        if not line or line.startswith("//"):
            return None

        left, sep, right = line.partition("=")
        if not sep:
            self._skip("missing '='")
            return None

        left = left.strip()
        is_sync = False
        if left.startswith(SYNC_MARKER):
            is_sync = True
            left = left[len(SYNC_MARKER):].strip()

        left_parts = left.split(None, 1)
        if len(left_parts) != 2:
            self._skip("expected '<returnType> <name>' before '='")
            return None
        return_type, name = left_parts[0], left_parts[1].strip()

        comment: Optional[str] = None
        comment_idx = right.find("//")
        if comment_idx >= 0:
            comment = right[comment_idx + 2:].strip() or None
            right = right[:comment_idx]

        self._check_type(return_type, name)
        params = self._parse_params(right.strip(), name)
        return NativeFunctionSignature(
            return_type=return_type,
            name=name,
            params=params,
            is_sync=is_sync,
            comment=comment,
        )

    def _parse_params(self, raw: str, function_name: str) -> List[NativeParameter]:
        if not raw or raw == NO_PARAMS:
            return []

        params: List[NativeParameter] = []
        for chunk in raw.split(","):
            parts = chunk.strip().split(None, 1)
            if len(parts) != 2:
                if chunk.strip():
                    self._skip(f"malformed parameter '{chunk.strip()}'")
                continue
            type_name, param_name = parts[0], parts[1].strip()
            if type_name == NO_PARAMS:
                raise NativeSchemaError(
                    f"Parameter '{param_name}' of '{function_name}' cannot be void."
                )
            self._check_type(type_name, function_name)
            params.append(NativeParameter(type_name, param_name))
        return params

    def _check_type(self, type_name: str, function_name: str) -> None:
        if type_name not in NATIVE_PARAM_TYPES:
            raise NativeSchemaError(
                f"Unknown native type '{type_name}' in '{function_name}'."
            )

    def _skip(self, reason: str) -> None:
        logger.debug(format_schema_diagnostic(f"Skipping native line: {reason}"))


def find_native_files(directory: Path) -> List[Path]:
    return sorted(path for path in Path(directory).rglob("*.native") if path.is_file())
