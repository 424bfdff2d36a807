from dataclasses import dataclass, field
from typing import Dict, List, Optional


# Game events

@dataclass
class EventField:
    name: str
    type_name: str
    comment: str = ""


@dataclass
class EventDefinition:
    """One game event, merged across every schema source that declares it.

    Fields keep first-declaration order. Merging is add-only: a later
    declaration can add a missing field or fill an empty comment, but never
    replaces a type or a comment that is already set.
    """

    name: str
    comment: str = ""
    fields: Dict[str, EventField] = field(default_factory=dict)

    def add_field(self, event_field: EventField) -> None:
        existing = self.fields.get(event_field.name)
        if existing is None:
            self.fields[event_field.name] = event_field
            return
        if not existing.comment and event_field.comment:
            existing.comment = event_field.comment

    def fill_comment(self, comment: str) -> None:
        if comment and not self.comment:
            self.comment = comment

    def merge(self, other: "EventDefinition") -> None:
        self.fill_comment(other.comment)
        for event_field in other.fields.values():
            self.add_field(
                EventField(event_field.name, event_field.type_name, event_field.comment)
            )


# Natives

@dataclass(frozen=True)
class NativeParameter:
    type_name: str
    name: str


@dataclass(frozen=True)
class NativeFunctionSignature:
    return_type: str
    name: str
    params: List[NativeParameter] = field(default_factory=list)
    is_sync: bool = False
    comment: Optional[str] = None


@dataclass(frozen=True)
class NativeClass:
    namespace: str
    class_name: str
    functions: List[NativeFunctionSignature] = field(default_factory=list)


# Protobuf correlation

@dataclass(frozen=True)
class NetMessageCorrelation:
    enum_name: str
    value_prefix: str
    message_substring: str
    trim_id_suffix: bool = False


@dataclass(frozen=True)
class NetMessageMatch:
    enum_name: str
    value_name: str
    message_name: str
    message_id: int
