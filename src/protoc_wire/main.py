from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from protoc_wire.fields.base import CodegenError
from protoc_wire.generator.message_generator import generate_file
from protoc_wire.models import FileDescriptor
from protoc_wire.options import DEFAULT_RUNTIME_PACKAGE, GeneratorOptions
from protoc_wire.parser.descriptor_loader import (
    DescriptorLoadError,
    compile_descriptor_set,
    convert_file,
    load_descriptor_set,
    select_file,
)

_LOG = logging.getLogger(__name__)


def _find_proto_files(root: str) -> List[str]:
    """Recursively find .proto files under root, sorted for deterministic output."""
    return sorted(str(p) for p in Path(root).rglob("*.proto"))


def _generate(
    file_desc: FileDescriptor,
    out_dir: str,
    options: GeneratorOptions,
    generated: List[str],
) -> None:
    path = generate_file(file_desc, out_dir, options)
    if path in generated:
        _LOG.warning("%s overwrote %s generated earlier in this run", file_desc.name, path)
        return
    generated.append(path)


def run(
    proto: Optional[str],
    descriptor_set: Optional[str],
    out_dir: str,
    include_paths: Sequence[str] = (),
    options: Optional[GeneratorOptions] = None,
) -> List[str]:
    """Main pipeline: load descriptors, generate one module per .proto file.

    Returns the generated file paths.
    """
    options = options or GeneratorOptions()
    generated: List[str] = []

    if descriptor_set is not None:
        fds = load_descriptor_set(descriptor_set)
        # protoc --include_imports puts dependencies first; generate every file
        targets = list(fds.file) if proto is None else [select_file(fds, proto)]
        for file_proto in targets:
            _generate(convert_file(file_proto), out_dir, options, generated)
        return generated

    if proto is None:
        raise ValueError("either proto or descriptor_set is required")

    inputs = _find_proto_files(proto) if Path(proto).is_dir() else [proto]
    if not inputs:
        _LOG.warning("No .proto files found under %s", proto)
    for proto_path in inputs:
        fds = compile_descriptor_set(proto_path, include_paths)
        file_desc = convert_file(select_file(fds, proto_path))
        _generate(file_desc, out_dir, options, generated)
    return generated


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Generate Python wire-format readers and writers from .proto files",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--proto",
        help="Path to a .proto file or a directory containing .proto files (recursively)",
    )
    source.add_argument(
        "--descriptor-set",
        help="Binary FileDescriptorSet produced by protoc --descriptor_set_out",
    )
    parser.add_argument("--out", required=True, help="Output directory for generated modules")
    parser.add_argument(
        "-I",
        "--include",
        action="append",
        default=[],
        help="Additional protoc include path (repeatable)",
    )
    parser.add_argument(
        "--runtime-package",
        default=DEFAULT_RUNTIME_PACKAGE,
        help="Package the generated code imports 'wire' from",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    options = GeneratorOptions(runtime_package=args.runtime_package)
    try:
        generated = run(args.proto, args.descriptor_set, args.out, args.include, options)
    except (DescriptorLoadError, CodegenError) as e:
        print(f"FATAL: {e}", file=sys.stderr)
        return 1

    for path in generated:
        print(f"Generated: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
