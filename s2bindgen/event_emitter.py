from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from s2bindgen import csharp
from s2bindgen.errors import EventHashCollisionWarning
from s2bindgen.model import EventDefinition, EventField
from s2bindgen.naming import NameAllocator, WordSegmenter, to_pascal_case, to_property_name
from s2bindgen.typesys import EVENT_TYPES, is_player_handle

logger = logging.getLogger(__name__)

INTERFACES_DIR = "Interfaces"
CLASSES_DIR = "Classes"

_FNV_OFFSET_BASIS = 0x811C9DC5
_FNV_PRIME = 0x01000193


def fnv1a_32(text: str) -> int:
    value = _FNV_OFFSET_BASIS
    for byte in text.encode("utf-8"):
        value ^= byte
        value = (value * _FNV_PRIME) & 0xFFFFFFFF
    return value


def event_type_name(event_name: str) -> str:
    return f"Event{to_pascal_case(event_name)}"


class EventBindingKind(Enum):
    SCALAR = "scalar"
    PLAYER_CONTROLLER = "player_controller"
    PLAYER_PAWN = "player_pawn"
    PLAYER_LOOKUP = "player_lookup"
    PLAYER_RAW = "player_raw"


@dataclass(frozen=True)
class EventBinding:
    kind: EventBindingKind
    prop_name: str
    cs_type: str
    storage_key: str
    type_name: str
    getter: str
    setter: Optional[str] = None
    comment: str = ""


def _scalar_binding(event_field: EventField, prop_name: str) -> Optional[EventBinding]:
    info = EVENT_TYPES.get(event_field.type_name)
    if info is None:
        return None
    key = csharp.string_literal(event_field.name)
    getter = f"Accessor.Get{info.accessor}({key})"
    if info.cast is not None:
        getter = f"({info.cast}){getter}"
    setter = f"Accessor.Set{info.accessor}({key}, value)" if info.can_set else None
    return EventBinding(
        kind=EventBindingKind.SCALAR,
        prop_name=prop_name,
        cs_type=info.cs_type,
        storage_key=event_field.name,
        type_name=event_field.type_name,
        getter=getter,
        setter=setter,
        comment=event_field.comment,
    )


def _player_bindings(
    event_field: EventField,
    base: str,
    names: NameAllocator,
) -> List[EventBinding]:
    key = csharp.string_literal(event_field.name)
    # (kind, suffix, C# type, getter, setter); allocation order matters.
    expansion = (
        (
            EventBindingKind.PLAYER_CONTROLLER,
            "Controller",
            "CCSPlayerController",
            f"Accessor.GetPlayerController({key})",
            None,
        ),
        (
            EventBindingKind.PLAYER_PAWN,
            "Pawn",
            "CCSPlayerPawn",
            f"Accessor.GetPlayerPawn({key})",
            None,
        ),
        (
            EventBindingKind.PLAYER_LOOKUP,
            "Player",
            "IPlayer?",
            f"Accessor.GetPlayer({key})",
            None,
        ),
        (
            EventBindingKind.PLAYER_RAW,
            "",
            "int",
            f"Accessor.GetInt32({key})",
            f"Accessor.SetInt32({key}, value)",
        ),
    )
    return [
        EventBinding(
            kind=kind,
            prop_name=names.allocate(f"{base}{suffix}"),
            cs_type=cs_type,
            storage_key=event_field.name,
            type_name=event_field.type_name,
            getter=getter,
            setter=setter,
            comment=event_field.comment,
        )
        for kind, suffix, cs_type, getter, setter in expansion
    ]


class EventBindingGenerator:
    """Renders one interface and one implementation class per game event."""

    def __init__(self, segmenter: Optional[WordSegmenter] = None):
        self.segmenter = segmenter
        self._hashes: Dict[int, str] = {}

    def reset(self) -> None:
        self._hashes = {}

    def bindings_for(self, event: EventDefinition) -> List[EventBinding]:
        names = NameAllocator()
        bindings: List[EventBinding] = []
        for event_field in event.fields.values():
            base = to_property_name(event_field.name, self.segmenter)
            if is_player_handle(event_field.type_name, event_field.name):
                bindings.extend(_player_bindings(event_field, base, names))
                continue
            if event_field.type_name not in EVENT_TYPES:
                logger.debug(
                    "Event '%s' field '%s' has unmapped type '%s', not emitted",
                    event.name,
                    event_field.name,
                    event_field.type_name,
                )
                continue
            binding = _scalar_binding(event_field, names.allocate(base))
            if binding is not None:
                bindings.append(binding)
        return bindings

    def identity_hash(self, event: EventDefinition) -> int:
        value = fnv1a_32(event.name)
        previous = self._hashes.get(value)
        if previous is not None and previous != event.name:
            warnings.warn(
                f"Hash collision detected for event '{event.name}': "
                f"0x{value:08X} is already used by '{previous}'.",
                EventHashCollisionWarning,
                stacklevel=2,
            )
        else:
            self._hashes[value] = event.name
        return value

    def generate(self, events: Iterable[EventDefinition]) -> Dict[str, str]:
        """Return ``relative path -> file content`` for every event."""
        self.reset()
        files: Dict[str, str] = {}
        for event in events:
            type_name = event_type_name(event.name)
            bindings = self.bindings_for(event)
            event_hash = self.identity_hash(event)
            files[f"{INTERFACES_DIR}/{type_name}.cs"] = self.generate_interface(
                event, bindings, event_hash
            )
            files[f"{CLASSES_DIR}/{type_name}Impl.cs"] = self.generate_class(event, bindings)
        return files

    def generate_interface(
        self,
        event: EventDefinition,
        bindings: List[EventBinding],
        event_hash: int,
    ) -> str:
        type_name = event_type_name(event.name)
        contract = f"IGameEvent<{type_name}>"
        body = [
            "",
            f"static {type_name} {contract}.Create(nint address) => new {type_name}Impl(address);",
            "",
            f"static string {contract}.GetName() => {csharp.string_literal(event.name)};",
            "",
            f"static uint {contract}.GetHash() => 0x{event_hash:08X}u;",
        ]
        for binding in bindings:
            body.append("")
            doc = [binding.comment, "<br/>"] if binding.comment else []
            body.extend(csharp.summary(*doc, f"type: {binding.type_name}"))
            accessors = "get; set;" if binding.setter is not None else "get;"
            body.append(f"{binding.cs_type} {binding.prop_name} {{ {accessors} }}")

        lines = [
            *csharp.GENERATED_HEADER,
            *csharp.usings(
                "SwiftlyS2.Core.GameEventDefinitions",
                "SwiftlyS2.Shared.GameEvents",
                "SwiftlyS2.Shared.Players",
                "SwiftlyS2.Shared.SchemaDefinitions",
            ),
            "",
            "namespace SwiftlyS2.Shared.GameEventDefinitions;",
            "",
            *self._header_comment(event),
            *csharp.block(f"public interface {type_name} : {contract}", body),
        ]
        return csharp.render_file(lines)

    def generate_class(self, event: EventDefinition, bindings: List[EventBinding]) -> str:
        type_name = event_type_name(event.name)
        impl_name = f"{type_name}Impl"
        body = [""]
        body.extend(csharp.block(f"public {impl_name}(nint address) : base(address)", []))
        for binding in bindings:
            body.append("")
            if binding.comment:
                body.append(f"// {binding.comment}")
            body.append(f"public {binding.cs_type} {binding.prop_name}")
            if binding.setter is not None:
                body.append(f"{{ get => {binding.getter}; set => {binding.setter}; }}")
            else:
                body.append(f"{{ get => {binding.getter}; }}")

        lines = [
            *csharp.GENERATED_HEADER,
            *csharp.usings(
                "SwiftlyS2.Core.GameEvents",
                "SwiftlyS2.Shared.GameEventDefinitions",
                "SwiftlyS2.Shared.GameEvents",
                "SwiftlyS2.Shared.Players",
                "SwiftlyS2.Shared.SchemaDefinitions",
            ),
            "",
            "namespace SwiftlyS2.Core.GameEventDefinitions;",
            "",
            *self._header_comment(event),
            *csharp.block(
                f"internal class {impl_name} : GameEvent<{type_name}>, {type_name}",
                body,
            ),
        ]
        return csharp.render_file(lines)

    def _header_comment(self, event: EventDefinition) -> List[str]:
        text = [f'Event "{event.name}"']
        if event.comment:
            text.append(event.comment)
        return csharp.summary(*text)
