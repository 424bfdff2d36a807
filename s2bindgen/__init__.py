"""Public Python API for s2bindgen.

The package turns engine schema sources (``.native`` signature files,
``*.gameevents`` definitions and ``.proto`` descriptors) into C# bindings.
Each schema kind has a parser/adapter and an emitter that can be used on its
own; :mod:`s2bindgen.generators` wires them into output pipelines.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from s2bindgen.config import GeneratorOptions, build_generators
from s2bindgen.errors import (
    CodegenError,
    DescriptorLoadError,
    EventHashCollisionWarning,
    NativeSchemaError,
    NetMessageCorrelationWarning,
    SchemaError,
    SchemaSourceError,
)
from s2bindgen.event_emitter import EventBindingGenerator, fnv1a_32
from s2bindgen.event_parser import GameEventParser, merge_event_sources
from s2bindgen.generators import GeneratorResult, run_generators
from s2bindgen.native_emitter import NativeTrampolineEmitter
from s2bindgen.native_parser import NativeSignatureParser
from s2bindgen.naming import to_pascal_case, to_property_name
from s2bindgen.proto_adapter import ProtoSchemaAdapter

try:
    __version__: str = version("s2bindgen")
except PackageNotFoundError:  # pragma: no cover - editable local fallback
    __version__ = "0.1.0"


def about(*, print_output: bool = True) -> str:
    """Return and optionally print the output layout contract.

    Example:
        >>> from s2bindgen import about
        >>> "SwiftlyS2.Generated" in about(print_output=False)
        True
    """
    text = (
        f"s2bindgen {__version__}\n"
        "Output root: <output>/src/SwiftlyS2.Generated/.\n"
        "Natives: Natives/<ClassName>.cs, one static class per .native file.\n"
        "Game events: GameEvents/Interfaces/Event<Name>.cs + GameEvents/Classes/Event<Name>Impl.cs.\n"
        "Protobufs: Protobufs/Enums, Protobufs/Interfaces and Protobufs/Classes.\n"
        "Regeneration: each generator replaces its own subtree on every run."
    )
    if print_output:
        print(text)
    return text


__all__ = [
    "__version__",
    "about",
    "CodegenError",
    "DescriptorLoadError",
    "EventBindingGenerator",
    "EventHashCollisionWarning",
    "GameEventParser",
    "GeneratorOptions",
    "GeneratorResult",
    "NativeSchemaError",
    "NativeSignatureParser",
    "NativeTrampolineEmitter",
    "NetMessageCorrelationWarning",
    "ProtoSchemaAdapter",
    "SchemaError",
    "SchemaSourceError",
    "build_generators",
    "fnv1a_32",
    "merge_event_sources",
    "run_generators",
    "to_pascal_case",
    "to_property_name",
]
