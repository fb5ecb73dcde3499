from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional


class FieldType(enum.Enum):
    """Declared type tag of a field."""

    DOUBLE = "double"
    FLOAT = "float"
    INT64 = "int64"
    UINT64 = "uint64"
    INT32 = "int32"
    FIXED64 = "fixed64"
    FIXED32 = "fixed32"
    BOOL = "bool"
    STRING = "string"
    GROUP = "group"
    MESSAGE = "message"
    BYTES = "bytes"
    UINT32 = "uint32"
    ENUM = "enum"
    SFIXED32 = "sfixed32"
    SFIXED64 = "sfixed64"
    SINT32 = "sint32"
    SINT64 = "sint64"


class FieldLabel(enum.Enum):
    OPTIONAL = "optional"
    REQUIRED = "required"
    REPEATED = "repeated"


@dataclass
class FieldDescriptor:
    name: str
    field_type: FieldType
    number: int
    label: FieldLabel = FieldLabel.OPTIONAL
    # Fully-qualified proto name of an enum/message type, e.g. ".pkg.Level".
    type_name: str = ""

    @property
    def is_repeated(self) -> bool:
        return self.label == FieldLabel.REPEATED


@dataclass
class EnumDescriptor:
    name: str
    full_name: str
    values: Dict[str, int] = field(default_factory=dict)


@dataclass
class MessageDescriptor:
    name: str
    full_name: str
    fields: List[FieldDescriptor] = field(default_factory=list)


@dataclass
class FileDescriptor:
    name: str
    package: Optional[str] = None
    messages: List[MessageDescriptor] = field(default_factory=list)
    enums: List[EnumDescriptor] = field(default_factory=list)
