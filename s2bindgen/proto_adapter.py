from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from google.protobuf.descriptor_pb2 import (
    DescriptorProto,
    EnumDescriptorProto,
    FieldDescriptorProto,
    FileDescriptorProto,
    FileDescriptorSet,
)

from s2bindgen import csharp
from s2bindgen.errors import NetMessageCorrelationWarning
from s2bindgen.model import NetMessageCorrelation, NetMessageMatch
from s2bindgen.naming import NameAllocator, to_camel_words
from s2bindgen.typesys import (
    MANAGED_VALUE_TYPES,
    NET_MESSAGE_CORRELATIONS,
    PROTO_SCALAR_TYPES,
    PROTO_SKIP_TYPES,
    BindingStrategy,
    ProtoScalarInfo,
    is_repeated,
)

logger = logging.getLogger(__name__)

INTERFACES_DIR = "Interfaces"
CLASSES_DIR = "Classes"
ENUMS_DIR = "Enums"

ID_SUFFIX = "Id"

# Members inherited from the runtime base classes.
RESERVED_MEMBERS = ("Accessor", "Address")

# Enum types from files that were not requested are not emitted.
_UNRECORDED_ENUM = ProtoScalarInfo("enum", "Int32", "int")


@dataclass(frozen=True)
class ProtoFieldBinding:
    strategy: BindingStrategy
    prop_name: str
    cs_type: str
    element_type: Optional[str]
    storage_key: str
    getter: str
    setter: Optional[str] = None


def _qualified_prefix(package: str) -> str:
    return f".{package}." if package else "."


def _walk_messages(
    messages: Iterable[DescriptorProto],
    chain: Tuple[str, ...] = (),
) -> Iterator[Tuple[Tuple[str, ...], DescriptorProto]]:
    for message in messages:
        path = chain + (message.name,)
        yield path, message
        yield from _walk_messages(message.nested_type, path)


def build_type_index(files: Iterable[FileDescriptorProto]) -> Dict[str, str]:
    """Map fully qualified type names (``.pkg.Outer.Inner``) to ``Outer_Inner``."""
    index: Dict[str, str] = {}
    for file_proto in files:
        prefix = _qualified_prefix(file_proto.package)
        for enum_proto in file_proto.enum_type:
            index[prefix + enum_proto.name] = enum_proto.name
        for path, message in _walk_messages(file_proto.message_type):
            index[prefix + ".".join(path)] = "_".join(path)
            for enum_proto in message.enum_type:
                enum_path = path + (enum_proto.name,)
                index[prefix + ".".join(enum_path)] = "_".join(enum_path)
    return index


def _trimmed_value_name(value_name: str, correlation: NetMessageCorrelation) -> str:
    name = value_name
    if name.startswith(correlation.value_prefix):
        name = name[len(correlation.value_prefix):]
    if correlation.trim_id_suffix and name.endswith(ID_SUFFIX):
        name = name[: -len(ID_SUFFIX)]
    return name


def correlate_net_messages(
    enum_proto: EnumDescriptorProto,
    message_names: Sequence[str],
) -> List[NetMessageMatch]:
    """Assign wire identifiers from one enum family to message types.

    For each enum value the prefix-stripped (and, for some families,
    ``Id``-trimmed) name is searched among ``message_names`` in declaration
    order, and the first message containing both the family substring and the
    name is taken. Several values may land on the same message.
    Values with no match raise a :class:`NetMessageCorrelationWarning`.
    """
    correlation = NET_MESSAGE_CORRELATIONS.get(enum_proto.name)
    if correlation is None:
        return []

    matches: List[NetMessageMatch] = []
    for value in enum_proto.value:
        name = _trimmed_value_name(value.name, correlation)
        candidates = [
            message_name
            for message_name in message_names
            if correlation.message_substring in message_name
            and name in message_name
        ]
        chosen = candidates[0] if candidates else None
        if chosen is None:
            warnings.warn(
                f"No message found for {enum_proto.name}.{value.name}; "
                "it is emitted without a wire identifier.",
                NetMessageCorrelationWarning,
                stacklevel=2,
            )
            continue

        matches.append(
            NetMessageMatch(
                enum_name=enum_proto.name,
                value_name=value.name,
                message_name=chosen,
                message_id=value.number,
            )
        )
        logger.debug("Net message %s = %d", chosen, value.number)
    return matches


class ProtoSchemaAdapter:
    """Turns the requested files of a descriptor set into C# bindings.

    Files outside ``explicit_files`` are only used to resolve type names.
    Emission runs in two passes: enums from every requested file first, so
    that field classification can tell enum-typed fields apart, then
    messages, with nested messages ahead of their enclosing message.
    """

    def __init__(self, descriptor_set: FileDescriptorSet, explicit_files: Iterable[str]):
        self.descriptor_set = descriptor_set
        self.explicit_files = set(explicit_files)
        self.type_index = build_type_index(descriptor_set.file)
        self.enum_names: Set[str] = set()
        self.net_messages: Dict[str, int] = {}

    def requested_files(self) -> List[FileDescriptorProto]:
        return [f for f in self.descriptor_set.file if f.name in self.explicit_files]

    def generate(self) -> Dict[str, str]:
        """Return ``relative path -> file content`` for all enums and messages."""
        self.enum_names = set()
        self.net_messages = {}
        files: Dict[str, str] = {}

        for file_proto in self.requested_files():
            for enum_name, enum_proto in self.collect_enums(file_proto):
                self.enum_names.add(enum_name)
                files[f"{ENUMS_DIR}/{enum_name}.cs"] = self.generate_enum(enum_name, enum_proto)

        for file_proto in self.requested_files():
            message_names = [
                m.name for m in file_proto.message_type if m.name not in PROTO_SKIP_TYPES
            ]
            for enum_proto in file_proto.enum_type:
                for match in correlate_net_messages(enum_proto, message_names):
                    self.net_messages[match.message_name] = match.message_id

            for message in file_proto.message_type:
                self._emit_message(message, (), files)

        logger.info(
            "Prepared %d enum(s) and %d net message(s)",
            len(self.enum_names),
            len(self.net_messages),
        )
        return files

    def collect_enums(
        self, file_proto: FileDescriptorProto
    ) -> List[Tuple[str, EnumDescriptorProto]]:
        collected: List[Tuple[str, EnumDescriptorProto]] = []
        for enum_proto in file_proto.enum_type:
            if enum_proto.name not in PROTO_SKIP_TYPES:
                collected.append((enum_proto.name, enum_proto))
        for path, message in _walk_messages(file_proto.message_type):
            if "_".join(path) in PROTO_SKIP_TYPES:
                continue
            for enum_proto in message.enum_type:
                enum_name = "_".join(path + (enum_proto.name,))
                if enum_name not in PROTO_SKIP_TYPES:
                    collected.append((enum_name, enum_proto))
        return collected

    def _emit_message(
        self,
        message: DescriptorProto,
        chain: Tuple[str, ...],
        files: Dict[str, str],
    ) -> None:
        path = chain + (message.name,)
        type_name = "_".join(path)
        if type_name in PROTO_SKIP_TYPES:
            return

        for nested in message.nested_type:
            self._emit_message(nested, path, files)

        message_id = self.net_messages.get(type_name) if not chain else None
        bindings = self.bindings_for(message)
        files[f"{INTERFACES_DIR}/{type_name}.cs"] = self.generate_interface(
            type_name, bindings, message_id
        )
        files[f"{CLASSES_DIR}/{type_name}Impl.cs"] = self.generate_class(
            type_name, bindings, message_id
        )

    def resolve_type_name(self, field: FieldDescriptorProto) -> str:
        if not field.type_name:
            return ""
        resolved = self.type_index.get(field.type_name)
        if resolved is not None:
            return resolved
        return field.type_name.lstrip(".").replace(".", "_")

    def bindings_for(self, message: DescriptorProto) -> List[ProtoFieldBinding]:
        names = NameAllocator(reserved=RESERVED_MEMBERS)
        return [self.classify_field(field, names) for field in message.field]

    def classify_field(
        self,
        field: FieldDescriptorProto,
        names: NameAllocator,
    ) -> ProtoFieldBinding:
        prop_name = names.allocate(to_camel_words(field.name))
        key = csharp.string_literal(field.name)
        repeated = is_repeated(field)
        type_name = self.resolve_type_name(field)

        if type_name in self.enum_names:
            if repeated:
                return self._value_collection(prop_name, field.name, key, type_name)
            return ProtoFieldBinding(
                strategy=BindingStrategy.ENUM,
                prop_name=prop_name,
                cs_type=type_name,
                element_type=None,
                storage_key=field.name,
                getter=f"({type_name})Accessor.GetInt32({key})",
                setter=f"Accessor.SetInt32({key}, (int)value)",
            )

        scalar = PROTO_SCALAR_TYPES.get(field.type)
        if scalar is None and field.type == FieldDescriptorProto.TYPE_ENUM:
            scalar = _UNRECORDED_ENUM
        if scalar is not None:
            if repeated:
                return self._value_collection(prop_name, field.name, key, scalar.cs_type)
            return ProtoFieldBinding(
                strategy=BindingStrategy.SCALAR,
                prop_name=prop_name,
                cs_type=scalar.cs_type,
                element_type=None,
                storage_key=field.name,
                getter=f"Accessor.Get{scalar.accessor}({key})",
                setter=f"Accessor.Set{scalar.accessor}({key}, value)",
            )

        managed = MANAGED_VALUE_TYPES.get(type_name)
        if managed is not None:
            if repeated:
                return self._value_collection(prop_name, field.name, key, managed)
            return ProtoFieldBinding(
                strategy=BindingStrategy.MANAGED_VALUE,
                prop_name=prop_name,
                cs_type=managed,
                element_type=None,
                storage_key=field.name,
                getter=f"Accessor.Get{managed}({key})",
                setter=f"Accessor.Set{managed}({key}, value)",
            )

        if repeated:
            return ProtoFieldBinding(
                strategy=BindingStrategy.REPEATED_MESSAGE,
                prop_name=prop_name,
                cs_type=f"IProtobufRepeatedFieldSubMessageType<{type_name}>",
                element_type=type_name,
                storage_key=field.name,
                getter=f"new ProtobufRepeatedFieldSubMessageType<{type_name}>(Accessor, {key})",
            )
        return ProtoFieldBinding(
            strategy=BindingStrategy.NESTED_MESSAGE,
            prop_name=prop_name,
            cs_type=type_name,
            element_type=None,
            storage_key=field.name,
            getter=f"new {type_name}Impl(NativeNetMessages.GetNestedMessage(Address, {key}), false)",
        )

    def _value_collection(
        self,
        prop_name: str,
        field_name: str,
        key: str,
        element_type: str,
    ) -> ProtoFieldBinding:
        return ProtoFieldBinding(
            strategy=BindingStrategy.REPEATED_SCALAR,
            prop_name=prop_name,
            cs_type=f"IProtobufRepeatedFieldValueType<{element_type}>",
            element_type=element_type,
            storage_key=field_name,
            getter=f"new ProtobufRepeatedFieldValueType<{element_type}>(Accessor, {key})",
        )

    def generate_enum(self, enum_name: str, enum_proto: EnumDescriptorProto) -> str:
        values = [f"{value.name} = {value.number}," for value in enum_proto.value]
        lines = [
            *csharp.GENERATED_HEADER,
            "namespace SwiftlyS2.Shared.ProtobufDefinitions;",
            "",
            *csharp.block(f"public enum {enum_name}", values),
        ]
        return csharp.render_file(lines)

    def generate_interface(
        self,
        type_name: str,
        bindings: List[ProtoFieldBinding],
        message_id: Optional[int],
    ) -> str:
        contract = f"ITypedProtobuf<{type_name}>"
        body: List[str] = []
        if message_id is not None:
            header = (
                f"public interface {type_name} : {contract}, "
                f"INetMessage<{type_name}>, IDisposable"
            )
            body.extend(
                [
                    f"static int INetMessage<{type_name}>.MessageId => {message_id};",
                    "",
                    f"static string INetMessage<{type_name}>.MessageName => "
                    f"{csharp.string_literal(type_name)};",
                    "",
                ]
            )
        else:
            header = f"public interface {type_name} : {contract}"
        body.append(
            f"static {type_name} {contract}.Wrap(nint handle, bool isManuallyAllocated) "
            f"=> new {type_name}Impl(handle, isManuallyAllocated);"
        )
        for binding in bindings:
            body.append("")
            accessors = "get; set;" if binding.setter is not None else "get;"
            body.append(f"public {binding.cs_type} {binding.prop_name} {{ {accessors} }}")

        lines = [
            *csharp.GENERATED_HEADER,
            *csharp.usings(
                "SwiftlyS2.Core.ProtobufDefinitions",
                "SwiftlyS2.Shared.Natives",
                "SwiftlyS2.Shared.NetMessages",
            ),
            "",
            "namespace SwiftlyS2.Shared.ProtobufDefinitions;",
            "",
            *csharp.block(header, body),
        ]
        return csharp.render_file(lines)

    def generate_class(
        self,
        type_name: str,
        bindings: List[ProtoFieldBinding],
        message_id: Optional[int],
    ) -> str:
        impl_name = f"{type_name}Impl"
        if message_id is not None:
            base_class = "NetMessage"
            base_args = "handle, isManuallyAllocated"
        else:
            base_class = "TypedProtobuf"
            base_args = "handle"

        body = csharp.block(
            f"public {impl_name}(nint handle, bool isManuallyAllocated) : base({base_args})",
            [],
        )
        for binding in bindings:
            body.append("")
            body.append(f"public {binding.cs_type} {binding.prop_name}")
            if binding.setter is not None:
                body.append(f"{{ get => {binding.getter}; set => {binding.setter}; }}")
            else:
                body.append(f"{{ get => {binding.getter}; }}")

        lines = [
            *csharp.GENERATED_HEADER,
            *csharp.usings(
                "SwiftlyS2.Core.Natives",
                "SwiftlyS2.Core.NetMessages",
                "SwiftlyS2.Shared.Natives",
                "SwiftlyS2.Shared.NetMessages",
                "SwiftlyS2.Shared.ProtobufDefinitions",
            ),
            "",
            "namespace SwiftlyS2.Core.ProtobufDefinitions;",
            "",
            *csharp.block(
                f"internal class {impl_name} : {base_class}<{type_name}>, {type_name}",
                body,
            ),
        ]
        return csharp.render_file(lines)
