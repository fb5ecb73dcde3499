from __future__ import annotations

import keyword
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from jinja2 import Environment, FileSystemLoader

from protoc_wire.fields.base import CodegenError, FieldGenerator, UnsupportedFieldError
from protoc_wire.fields.repeated_enum import RepeatedEnumField
from protoc_wire.models import (
    EnumDescriptor,
    FieldDescriptor,
    FieldType,
    FileDescriptor,
    MessageDescriptor,
)
from protoc_wire.naming import NameRegistry
from protoc_wire.options import GeneratorOptions

_LOG = logging.getLogger(__name__)

# Names the generated module imports. Class bodies evaluate annotations
# against these, so neither a class nor a class member may shadow them.
MODULE_IMPORTS = ("dataclass", "enum", "List", "Optional", "wire")

# Members every generated writer/reader class defines on its own.
RESERVED_MEMBERS = MODULE_IMPORTS + (
    "buf",
    "calc_protobuf_size",
    "close",
    "decode",
    "encode",
    "encode_to",
    "_allocator",
)


def _get_template_env() -> Environment:
    template_dir = Path(__file__).parent.parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def python_type_name(full_name: str, package: Optional[str]) -> str:
    """Flattens a proto type path to a module-level class name.

    ``pkg.Outer.Level`` in package ``pkg`` becomes ``OuterLevel``.
    """
    name = full_name.lstrip(".")
    if package and name.startswith(package + "."):
        name = name[len(package) + 1:]
    return "".join(name.split("."))


def _enum_value_name(name: str) -> str:
    return name + "_" if keyword.iskeyword(name) else name


def _claim(module_names: NameRegistry, full_name: str, candidate: str) -> str:
    name = module_names.request_unique(candidate)
    if name != candidate:
        _LOG.warning("%s: class name '%s' is taken; using '%s'", full_name, candidate, name)
    return name


class EnumResolver:
    """Maps fully-qualified proto enum names to their generated class names.

    Enum class names are claimed in ``module_names`` so that flattened paths
    such as ``Order.Level`` and a message ``OrderLevel`` do not collide.
    """

    def __init__(self, file: FileDescriptor, module_names: Optional[NameRegistry] = None):
        if module_names is None:
            module_names = NameRegistry(MODULE_IMPORTS)
        self._by_full_name: Dict[str, str] = {}
        for e in file.enums:
            full_name = e.full_name.lstrip(".")
            self._by_full_name[full_name] = _claim(
                module_names, full_name, python_type_name(e.full_name, file.package)
            )

    def class_name(self, enum_desc: EnumDescriptor) -> str:
        return self._by_full_name[enum_desc.full_name.lstrip(".")]

    def resolve(self, type_name: str, message_name: str, field_name: str) -> str:
        resolved = self._by_full_name.get(type_name.lstrip("."))
        if resolved is None:
            raise CodegenError(
                f"enum type '{type_name}' is not defined in this file",
                message_name,
                field_name,
            )
        return resolved


def create_field_generator(
    field_desc: FieldDescriptor,
    wire_prefix: str,
    names: NameRegistry,
    writer_struct_name: str,
) -> FieldGenerator:
    """Picks the generator for a field's kind."""
    if field_desc.field_type == FieldType.ENUM and field_desc.is_repeated:
        return RepeatedEnumField(
            field_desc.name,
            field_desc.field_type,
            field_desc.number,
            wire_prefix,
            names,
            writer_struct_name,
        )
    kind = f"{field_desc.label.value} {field_desc.field_type.value}"
    raise UnsupportedFieldError(
        f"no generator for '{kind}' fields", writer_struct_name, field_desc.name
    )


@dataclass
class MessageCode:
    name: str
    wire_name: str
    reader_name: str
    wire_consts: List[str] = field(default_factory=list)
    writer_fields: List[str] = field(default_factory=list)
    size_checks: List[str] = field(default_factory=list)
    writers: List[str] = field(default_factory=list)
    reader_fields: List[str] = field(default_factory=list)
    reader_cases: List[str] = field(default_factory=list)
    reader_methods: List[str] = field(default_factory=list)
    reader_deinits: List[str] = field(default_factory=list)
    needs_allocator: bool = False


def build_message_code(
    message: MessageDescriptor,
    resolver: EnumResolver,
    package: Optional[str],
    options: GeneratorOptions,
    module_names: Optional[NameRegistry] = None,
) -> MessageCode:
    """Runs the walk, resolution, emission and teardown passes for one message.

    The writer, wire and reader class names are claimed in ``module_names``;
    field identifiers may not reuse any name claimed there so far.
    """
    if module_names is None:
        module_names = NameRegistry(MODULE_IMPORTS)
    full_name = message.full_name.lstrip(".")
    class_name = _claim(module_names, full_name, python_type_name(message.full_name, package))
    code = MessageCode(
        name=class_name,
        wire_name=_claim(module_names, full_name, class_name + options.wire_suffix),
        reader_name=_claim(module_names, full_name, class_name + options.reader_suffix),
    )

    names = NameRegistry([*RESERVED_MEMBERS, *module_names])
    generators: List[Tuple[FieldDescriptor, FieldGenerator]] = []
    for field_desc in message.fields:
        try:
            gen = create_field_generator(field_desc, code.wire_name, names, code.name)
        except UnsupportedFieldError as e:
            _LOG.warning("%s; skipping field", e)
            continue
        generators.append((field_desc, gen))

    try:
        for field_desc, gen in generators:
            gen.resolve(resolver.resolve(field_desc.type_name, code.name, field_desc.name))

        for _, gen in generators:
            code.wire_consts.append(gen.create_wire_const())
            code.writer_fields.append(gen.create_writer_struct_field())
            code.size_checks.append(gen.create_size_check())
            code.writers.append(gen.create_writer())
            code.reader_fields.append(gen.create_reader_struct_field())
            code.reader_cases.append(gen.create_reader_case())
            code.reader_methods.append(gen.create_reader_method())
            code.reader_deinits.append(gen.create_reader_deinit())
            code.needs_allocator = code.needs_allocator or gen.reader_needs_allocator
    finally:
        for _, gen in generators:
            gen.close()

    _LOG.debug("Generated %s with %d field(s)", code.name, len(generators))
    return code


def _enum_context(enum_desc: EnumDescriptor, resolver: EnumResolver) -> Dict:
    return {
        "name": resolver.class_name(enum_desc),
        "values": [(_enum_value_name(n), v) for n, v in enum_desc.values.items()],
    }


def generate_module(file: FileDescriptor, options: Optional[GeneratorOptions] = None) -> str:
    """Generate the Python module source for every message of a .proto file."""
    options = options or GeneratorOptions()
    env = _get_template_env()
    template = env.get_template("module.py.j2")

    module_names = NameRegistry(MODULE_IMPORTS)
    resolver = EnumResolver(file, module_names)
    messages = [
        build_message_code(m, resolver, file.package, options, module_names)
        for m in file.messages
    ]

    return template.render(
        source_file=file.name,
        runtime_package=options.runtime_package,
        enums=[_enum_context(e, resolver) for e in file.enums],
        messages=messages,
    )


def module_file_name(proto_name: str, options: GeneratorOptions) -> str:
    stem = Path(proto_name).stem
    return f"{stem}{options.output_suffix}.py"


def generate_file(
    file: FileDescriptor,
    output_dir: str,
    options: Optional[GeneratorOptions] = None,
) -> str:
    """Generate the module for ``file`` under output_dir.

    Returns the generated file path.
    """
    options = options or GeneratorOptions()
    source = generate_module(file, options)

    os.makedirs(output_dir, exist_ok=True)
    file_path = os.path.join(output_dir, module_file_name(file.name, options))
    Path(file_path).write_text(source)
    return file_path
