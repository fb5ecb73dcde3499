"""Contract shared by every field-kind generator."""

from __future__ import annotations

import abc
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader


class CodegenError(Exception):
    """Raised when code for a message or one of its fields cannot be produced."""

    def __init__(self, error_message: str, message_name: str, field_name: Optional[str] = None):
        location = message_name if field_name is None else f"{message_name}.{field_name}"
        super().__init__(f"codegen error: {error_message} (in {location})")
        self.error_message = error_message
        self.message_name = message_name
        self.field_name = field_name


class UnsupportedFieldError(CodegenError):
    """Raised for field kinds that have no generator."""


class GeneratorStateError(RuntimeError):
    """A generator was used out of order: before resolve() or after close()."""


def _get_template_env() -> Environment:
    template_dir = Path(__file__).parent.parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=False,
    )


class FieldGenerator(abc.ABC):
    """Produces the code fragments one field contributes to its message.

    The message assembler decides where each fragment goes; a generator only
    renders text. Fragments are returned unindented.
    """

    _env: Optional[Environment] = None

    @classmethod
    def _render(cls, template_name: str, **context) -> str:
        if FieldGenerator._env is None:
            FieldGenerator._env = _get_template_env()
        return FieldGenerator._env.get_template(template_name).render(**context)

    @abc.abstractmethod
    def resolve(self, resolved_type: str) -> None:
        """Records the Python name of the field's target type."""

    @abc.abstractmethod
    def close(self) -> None:
        """Releases the identifiers owned by this generator."""

    @abc.abstractmethod
    def create_wire_const(self) -> str:
        """Wire number constant for the message's wire namespace class."""

    @abc.abstractmethod
    def create_writer_struct_field(self) -> str:
        """Field declaration in the writer dataclass."""

    @abc.abstractmethod
    def create_size_check(self) -> str:
        """Statements adding this field's encoded size to ``res``."""

    @abc.abstractmethod
    def create_writer(self) -> str:
        """Statements appending this field to ``target``."""

    @abc.abstractmethod
    def create_reader_struct_field(self) -> str:
        """Attribute declarations in the reader class."""

    @abc.abstractmethod
    def create_reader_case(self) -> str:
        """Dispatch clause for this field's tag in the decode loop."""

    @abc.abstractmethod
    def create_reader_method(self) -> str:
        """Public accessor on the reader class."""

    @abc.abstractmethod
    def create_reader_deinit(self) -> str:
        """Statements releasing reader storage in ``close()``."""

    @property
    @abc.abstractmethod
    def reader_needs_allocator(self) -> bool:
        """Whether the reader's accessor for this field takes an allocator."""
