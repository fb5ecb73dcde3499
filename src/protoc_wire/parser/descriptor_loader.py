"""Load .proto definitions through protoc descriptor sets into the models."""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from typing import List, Optional, Sequence

from google.protobuf import descriptor_pb2 as d2
from google.protobuf.message import DecodeError as ProtobufDecodeError

from protoc_wire.models import (
    EnumDescriptor,
    FieldDescriptor,
    FieldLabel,
    FieldType,
    FileDescriptor,
    MessageDescriptor,
)

_LOG = logging.getLogger(__name__)


class DescriptorLoadError(Exception):
    """Raised when a descriptor set cannot be produced or read."""


def compile_descriptor_set(
    proto_path: str,
    include_paths: Sequence[str] = (),
) -> d2.FileDescriptorSet:
    """Run protoc on proto_path and return the resulting descriptor set."""
    includes = [os.path.dirname(os.path.abspath(proto_path)), *include_paths]

    # de-dup while preserving order
    seen = set()
    inc_args: List[str] = []
    for inc in includes:
        if inc and inc not in seen:
            seen.add(inc)
            inc_args.extend(["-I", inc])

    with tempfile.TemporaryDirectory() as td:
        desc_path = os.path.join(td, "descriptor_set.pb")
        cmd = ["protoc", "--include_imports", f"--descriptor_set_out={desc_path}"] + inc_args + [proto_path]
        _LOG.debug("Running %s", " ".join(cmd))
        try:
            subprocess.run(cmd, check=True, capture_output=True)
        except FileNotFoundError as e:
            raise DescriptorLoadError(
                "'protoc' not found. Please install the Protocol Buffers compiler and ensure it is in PATH."
            ) from e
        except subprocess.CalledProcessError as e:
            raise DescriptorLoadError(
                f"protoc failed: {e.stderr.decode('utf-8', errors='ignore')}"
            ) from e

        return load_descriptor_set(desc_path)


def load_descriptor_set(path: str) -> d2.FileDescriptorSet:
    """Parse a binary FileDescriptorSet as written by protoc --descriptor_set_out."""
    fds = d2.FileDescriptorSet()
    try:
        with open(path, "rb") as f:
            fds.ParseFromString(f.read())
    except OSError as e:
        raise DescriptorLoadError(f"cannot read descriptor set '{path}': {e}") from e
    except ProtobufDecodeError as e:
        raise DescriptorLoadError(f"'{path}' is not a valid descriptor set: {e}") from e
    return fds


def select_file(fds: d2.FileDescriptorSet, proto_path: str) -> d2.FileDescriptorProto:
    """Find the descriptor for proto_path in a set that may include imports."""
    base = os.path.basename(proto_path)
    for f in fds.file:
        if f.name == base or f.name.endswith("/" + base):
            return f
    # Fallback: if only one file, use it
    if len(fds.file) == 1:
        return fds.file[0]
    names = ", ".join(ff.name for ff in fds.file)
    raise DescriptorLoadError(
        f"Could not locate target file '{base}' in descriptor set. Found: {names}"
    )


def _full_name(scope: str, name: str) -> str:
    return f"{scope}.{name}" if scope else name


def _convert_field(fd: d2.FieldDescriptorProto) -> FieldDescriptor:
    type_name = d2.FieldDescriptorProto.Type.Name(fd.type)[len("TYPE_"):]
    label_name = d2.FieldDescriptorProto.Label.Name(fd.label)[len("LABEL_"):]
    return FieldDescriptor(
        name=fd.name,
        field_type=FieldType[type_name],
        number=fd.number,
        label=FieldLabel[label_name],
        type_name=fd.type_name.lstrip("."),
    )


def _collect_enums(enums, scope: str, out: List[EnumDescriptor]) -> None:
    for e in enums:
        out.append(
            EnumDescriptor(
                name=e.name,
                full_name=_full_name(scope, e.name),
                values={v.name: v.number for v in e.value},
            )
        )


def _collect_messages(
    messages,
    scope: str,
    out_messages: List[MessageDescriptor],
    out_enums: List[EnumDescriptor],
) -> None:
    """Flatten messages and the enums nested in them, parents first."""
    for m in messages:
        # map<K, V> fields are backed by synthetic entry messages
        if m.options.map_entry:
            continue
        full_name = _full_name(scope, m.name)
        out_messages.append(
            MessageDescriptor(
                name=m.name,
                full_name=full_name,
                fields=[_convert_field(f) for f in m.field],
            )
        )
        _collect_enums(m.enum_type, full_name, out_enums)
        _collect_messages(m.nested_type, full_name, out_messages, out_enums)


def convert_file(proto: d2.FileDescriptorProto) -> FileDescriptor:
    """Map a FileDescriptorProto into the generator's models."""
    package: Optional[str] = proto.package or None
    enums: List[EnumDescriptor] = []
    messages: List[MessageDescriptor] = []

    _collect_enums(proto.enum_type, package or "", enums)
    _collect_messages(proto.message_type, package or "", messages, enums)

    return FileDescriptor(
        name=proto.name,
        package=package,
        messages=messages,
        enums=enums,
    )
