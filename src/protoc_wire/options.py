from __future__ import annotations

from dataclasses import dataclass

DEFAULT_RUNTIME_PACKAGE = "protoc_wire.runtime"


@dataclass
class GeneratorOptions:
    # Package the generated module imports ``wire`` from.
    runtime_package: str = DEFAULT_RUNTIME_PACKAGE
    wire_suffix: str = "Wire"
    reader_suffix: str = "Reader"
    # Appended to the .proto stem to name the generated module.
    output_suffix: str = "_wire"
