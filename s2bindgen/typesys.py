from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from google.protobuf.descriptor_pb2 import FieldDescriptorProto

from s2bindgen.model import NetMessageCorrelation


class BindingStrategy(Enum):
    SCALAR = "scalar"
    ENUM = "enum_backed_int"
    MANAGED_VALUE = "managed_value_type"
    NESTED_MESSAGE = "nested_message"
    REPEATED_SCALAR = "repeated_scalar"
    REPEATED_MESSAGE = "repeated_message"


# Game events

@dataclass(frozen=True)
class EventTypeInfo:
    cs_type: str
    accessor: str
    can_set: bool = True
    cast: Optional[str] = None


EVENT_TYPES: Dict[str, EventTypeInfo] = {
    "string": EventTypeInfo("string", "String"),
    "bool": EventTypeInfo("bool", "Bool"),
    "byte": EventTypeInfo("byte", "Int32", cast="byte"),
    "short": EventTypeInfo("short", "Int32", cast="short"),
    "long": EventTypeInfo("int", "Int32"),
    "int": EventTypeInfo("int", "Int32"),
    "float": EventTypeInfo("float", "Float"),
    "uint64": EventTypeInfo("ulong", "UInt64"),
    "player_controller": EventTypeInfo("int", "PlayerSlot"),
    "player_controller_and_pawn": EventTypeInfo("int", "PlayerSlot"),
    "player_pawn": EventTypeInfo("int", "PawnEntityIndex", can_set=False),
    "ehandle": EventTypeInfo("nint", "Ptr"),
}

EVENT_SKIP_TYPES = frozenset({"none", "local", "0", "1"})

EVENT_TYPE_ALIASES: Dict[str, str] = {
    "uint64_t": "uint64",
    "ehandle_t": "ehandle",
}

PLAYER_HANDLE_TYPES = frozenset({"player_controller", "player_controller_and_pawn"})

USER_ID_FIELD = "userid"


def normalize_event_type(type_name: str) -> str:
    lowered = type_name.lower()
    return EVENT_TYPE_ALIASES.get(lowered, lowered)


def is_player_handle(type_name: str, field_name: str) -> bool:
    return type_name in PLAYER_HANDLE_TYPES or field_name.lower() == USER_ID_FIELD


# Natives

NATIVE_PARAM_TYPES: Dict[str, str] = {
    "int16": "short",
    "uint16": "ushort",
    "int32": "int",
    "float": "float",
    "double": "double",
    "bool": "bool",
    "byte": "byte",
    "int64": "long",
    "uint32": "uint",
    "uint64": "ulong",
    "ptr": "nint",
    "string": "string",
    "void": "void",
    "vector2": "Vector2D",
    "vector": "Vector",
    "vector4": "Vector4D",
    "qangle": "QAngle",
    "color": "Color",
    "bytes": "byte[]",
    "cutlstringtoken": "CUtlStringToken",
}

NATIVE_DELEGATE_PARAM_TYPES: Dict[str, str] = {
    **NATIVE_PARAM_TYPES,
    "string": "byte*",
    "bytes": "byte*",
    "bool": "byte",
}

NATIVE_DELEGATE_RETURN_TYPES: Dict[str, str] = {
    **NATIVE_PARAM_TYPES,
    "string": "int",
    "bytes": "int",
    "bool": "byte",
}

NATIVE_RETURN_TYPES: Dict[str, str] = dict(NATIVE_PARAM_TYPES)

BUFFER_RETURN_TYPES = frozenset({"string", "bytes"})


def is_buffer_return(type_name: str) -> bool:
    return type_name in BUFFER_RETURN_TYPES


# Protobuf

@dataclass(frozen=True)
class ProtoScalarInfo:
    proto_name: str
    accessor: str
    cs_type: str


PROTO_SCALAR_TYPES: Dict[int, ProtoScalarInfo] = {
    FieldDescriptorProto.TYPE_BOOL: ProtoScalarInfo("bool", "Bool", "bool"),
    FieldDescriptorProto.TYPE_INT32: ProtoScalarInfo("int32", "Int32", "int"),
    FieldDescriptorProto.TYPE_SINT32: ProtoScalarInfo("sint32", "Int32", "int"),
    FieldDescriptorProto.TYPE_SFIXED32: ProtoScalarInfo("sfixed32", "Int32", "int"),
    FieldDescriptorProto.TYPE_FIXED32: ProtoScalarInfo("fixed32", "UInt32", "uint"),
    FieldDescriptorProto.TYPE_UINT32: ProtoScalarInfo("uint32", "UInt32", "uint"),
    FieldDescriptorProto.TYPE_INT64: ProtoScalarInfo("int64", "Int64", "long"),
    FieldDescriptorProto.TYPE_SINT64: ProtoScalarInfo("sint64", "Int64", "long"),
    FieldDescriptorProto.TYPE_SFIXED64: ProtoScalarInfo("sfixed64", "Int64", "long"),
    FieldDescriptorProto.TYPE_FIXED64: ProtoScalarInfo("fixed64", "UInt64", "ulong"),
    FieldDescriptorProto.TYPE_UINT64: ProtoScalarInfo("uint64", "UInt64", "ulong"),
    FieldDescriptorProto.TYPE_FLOAT: ProtoScalarInfo("float", "Float", "float"),
    FieldDescriptorProto.TYPE_DOUBLE: ProtoScalarInfo("double", "Double", "double"),
    FieldDescriptorProto.TYPE_STRING: ProtoScalarInfo("string", "String", "string"),
    FieldDescriptorProto.TYPE_BYTES: ProtoScalarInfo("bytes", "Bytes", "byte[]"),
}

MANAGED_VALUE_TYPES: Dict[str, str] = {
    "CMsgVector": "Vector",
    "CMsgQAngle": "QAngle",
    "CMsgVector2D": "Vector2D",
    "CMsgRGBA": "Color",
}

PROTO_SKIP_TYPES = frozenset(
    {
        "FileDescriptorSet",
        "FileDescriptorProto",
        "DescriptorProto",
        "FieldDescriptorProto",
        "OneofDescriptorProto",
        "EnumDescriptorProto",
        "EnumValueDescriptorProto",
        "ServiceDescriptorProto",
        "MethodDescriptorProto",
        "FileOptions",
        "MessageOptions",
        "FieldOptions",
        "OneofOptions",
        "EnumOptions",
        "EnumValueOptions",
        "ServiceOptions",
        "MethodOptions",
        "UninterpretedOption",
        "SourceCodeInfo",
        "GeneratedCodeInfo",
        "Duration",
        "Timestamp",
        "Any",
        "Empty",
        "Struct",
        "Value",
        "ListValue",
        "NullValue",
        "DoubleValue",
        "FloatValue",
        "Int64Value",
        "UInt64Value",
        "Int32Value",
        "UInt32Value",
        "BoolValue",
        "StringValue",
        "BytesValue",
    }
)

NET_MESSAGE_CORRELATIONS: Dict[str, NetMessageCorrelation] = {
    corr.enum_name: corr
    for corr in (
        NetMessageCorrelation("EBaseUserMessages", "UM_", "CUserMessage"),
        NetMessageCorrelation("ETEProtobufIds", "TE_", "CMsgTE", trim_id_suffix=True),
        NetMessageCorrelation("ECsgoGameEvents", "GE_", "CMsgTE", trim_id_suffix=True),
        NetMessageCorrelation("ECstrike15UserMessages", "CS_UM_", "CCSUsrMsg_"),
        NetMessageCorrelation("EBaseGameEvents", "GE_", "CMsg"),
        NetMessageCorrelation("CLC_Messages", "clc_", "CCLCMsg_"),
        NetMessageCorrelation("SVC_Messages", "svc_", "CSVCMsg_"),
        NetMessageCorrelation("NET_Messages", "net_", "CNETMsg_"),
    )
}


def is_repeated(field: FieldDescriptorProto) -> bool:
    return field.label == FieldDescriptorProto.LABEL_REPEATED
