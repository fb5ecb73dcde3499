"""Code generation for ``repeated <Enum>`` fields.

Writers pick the representation from the element count: one element is
written unpacked (tag + varint), two or more are packed into a single
length-delimited block. Readers accept any mix of both. While scanning they
only record where each occurrence starts and which wire type it used; the
values are decoded when the accessor is called.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from protoc_wire import naming
from protoc_wire.models import FieldType
from protoc_wire.naming import NameRegistry

from .base import FieldGenerator, GeneratorStateError


@dataclass(frozen=True)
class FieldNames:
    writer_field_name: str
    reader_field_name: str
    reader_method_name: str
    reader_offsets_name: str
    reader_wires_name: str
    wire_const_name: str
    wire_const_full_name: str


def derive_names(field_name: str, wire_prefix: str, names: NameRegistry) -> FieldNames:
    writer_field = naming.struct_field_name(field_name, names)
    wire_const = naming.const_name(f"{field_name}Wire", names)
    reader_method = naming.struct_method_name(f"get_{field_name}", names)

    return FieldNames(
        writer_field_name=writer_field,
        reader_field_name=names.request_unique(f"_{writer_field}"),
        reader_method_name=reader_method,
        reader_offsets_name=names.request_unique(f"_{writer_field}_offsets"),
        reader_wires_name=names.request_unique(f"_{writer_field}_wires"),
        wire_const_name=wire_const,
        wire_const_full_name=f"{wire_prefix}.{wire_const}",
    )


class RepeatedEnumField(FieldGenerator):
    def __init__(
        self,
        field_name: str,
        field_type: FieldType,
        field_index: int,
        wire_prefix: str,
        names: NameRegistry,
        writer_struct_name: str,
    ):
        self.target_type = field_type
        self.wire_index = field_index
        self.writer_struct_name = writer_struct_name
        self.resolved_enum: Optional[str] = None
        self._names: Optional[FieldNames] = derive_names(field_name, wire_prefix, names)

    @property
    def names(self) -> FieldNames:
        self._check_open()
        return self._names

    def resolve(self, resolved_type: str) -> None:
        self._check_open()
        self.resolved_enum = resolved_type

    def close(self) -> None:
        if self._names is None:
            raise GeneratorStateError("close() called twice")
        self._names = None
        self.resolved_enum = None

    def _check_open(self) -> None:
        if self._names is None:
            raise GeneratorStateError("field generator used after close()")

    def _enum_type(self) -> str:
        self._check_open()
        if self.resolved_enum is None:
            raise GeneratorStateError(
                f"enum type of field '{self.writer_struct_name}.{self.names.writer_field_name}' is not resolved"
            )
        return self.resolved_enum

    def create_wire_const(self) -> str:
        return self._render(
            "repeated_enum/wire_const.py.j2",
            const_name=self.names.wire_const_name,
            wire_index=self.wire_index,
        )

    def create_writer_struct_field(self) -> str:
        return self._render(
            "repeated_enum/writer_field.py.j2",
            writer_field=self.names.writer_field_name,
            enum_type=self._enum_type(),
        )

    def create_size_check(self) -> str:
        self._enum_type()
        return self._render(
            "repeated_enum/size_check.py.j2",
            writer_field=self.names.writer_field_name,
            wire_const=self.names.wire_const_full_name,
        )

    def create_writer(self) -> str:
        self._enum_type()
        return self._render(
            "repeated_enum/writer.py.j2",
            writer_field=self.names.writer_field_name,
            wire_const=self.names.wire_const_full_name,
        )

    def create_reader_struct_field(self) -> str:
        self._enum_type()
        return self._render(
            "repeated_enum/reader_field.py.j2",
            offsets=self.names.reader_offsets_name,
            wires=self.names.reader_wires_name,
        )

    def create_reader_case(self) -> str:
        self._enum_type()
        return self._render(
            "repeated_enum/reader_case.py.j2",
            wire_const=self.names.wire_const_full_name,
            offsets=self.names.reader_offsets_name,
            wires=self.names.reader_wires_name,
        )

    def create_reader_method(self) -> str:
        return self._render(
            "repeated_enum/reader_method.py.j2",
            method_name=self.names.reader_method_name,
            enum_type=self._enum_type(),
            offsets=self.names.reader_offsets_name,
            wires=self.names.reader_wires_name,
        )

    def create_reader_deinit(self) -> str:
        self._enum_type()
        return self._render(
            "repeated_enum/reader_deinit.py.j2",
            offsets=self.names.reader_offsets_name,
            wires=self.names.reader_wires_name,
        )

    @property
    def reader_needs_allocator(self) -> bool:
        return True
