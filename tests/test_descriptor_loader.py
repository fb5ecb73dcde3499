import shutil

import pytest
from google.protobuf import descriptor_pb2 as d2

from protoc_wire.models import FieldLabel, FieldType
from protoc_wire.parser.descriptor_loader import (
    DescriptorLoadError,
    compile_descriptor_set,
    convert_file,
    load_descriptor_set,
    select_file,
)

HAS_PROTOC = shutil.which("protoc") is not None

ORDERS_PROTO = """\
syntax = "proto3";
package shop;

enum Level {
    A = 0;
    B = 1;
    C = 2;
}

message Order {
    repeated Level status = 7;
    int32 id = 1;

    message Line {
        enum Kind {
            KIND_UNKNOWN = 0;
            KIND_ITEM = 1;
        }
        repeated Kind kinds = 1;
    }

    map<string, int32> counts = 2;
}
"""


def make_orders_file() -> d2.FileDescriptorProto:
    fdp = d2.FileDescriptorProto(name="orders.proto", package="shop", syntax="proto3")

    level = fdp.enum_type.add(name="Level")
    for name, number in (("A", 0), ("B", 1), ("C", 2)):
        level.value.add(name=name, number=number)

    order = fdp.message_type.add(name="Order")
    order.field.add(
        name="status",
        number=7,
        type=d2.FieldDescriptorProto.TYPE_ENUM,
        label=d2.FieldDescriptorProto.LABEL_REPEATED,
        type_name=".shop.Level",
    )
    order.field.add(
        name="id",
        number=1,
        type=d2.FieldDescriptorProto.TYPE_INT32,
        label=d2.FieldDescriptorProto.LABEL_OPTIONAL,
    )

    line = order.nested_type.add(name="Line")
    kind = line.enum_type.add(name="Kind")
    kind.value.add(name="KIND_UNKNOWN", number=0)
    kind.value.add(name="KIND_ITEM", number=1)
    line.field.add(
        name="kinds",
        number=1,
        type=d2.FieldDescriptorProto.TYPE_ENUM,
        label=d2.FieldDescriptorProto.LABEL_REPEATED,
        type_name=".shop.Order.Line.Kind",
    )

    entry = order.nested_type.add(name="CountsEntry")
    entry.options.map_entry = True
    return fdp


class TestConvertFile:
    def test_messages_are_flattened(self):
        file = convert_file(make_orders_file())

        assert file.name == "orders.proto"
        assert file.package == "shop"
        assert [m.full_name for m in file.messages] == ["shop.Order", "shop.Order.Line"]

    def test_enums_are_flattened(self):
        file = convert_file(make_orders_file())

        assert [e.full_name for e in file.enums] == ["shop.Level", "shop.Order.Line.Kind"]
        assert file.enums[0].values == {"A": 0, "B": 1, "C": 2}

    def test_fields(self):
        order = convert_file(make_orders_file()).messages[0]
        status, id_field = order.fields

        assert status.name == "status"
        assert status.field_type == FieldType.ENUM
        assert status.label == FieldLabel.REPEATED
        assert status.is_repeated
        assert status.number == 7
        assert status.type_name == "shop.Level"

        assert id_field.field_type == FieldType.INT32
        assert not id_field.is_repeated

    def test_no_package(self):
        fdp = d2.FileDescriptorProto(name="bare.proto")
        fdp.enum_type.add(name="Level").value.add(name="A", number=0)
        file = convert_file(fdp)
        assert file.package is None
        assert file.enums[0].full_name == "Level"


class TestDescriptorSets:
    def test_load_descriptor_set(self, tmp_path):
        fds = d2.FileDescriptorSet()
        fds.file.append(make_orders_file())
        path = tmp_path / "orders.pb"
        path.write_bytes(fds.SerializeToString())

        loaded = load_descriptor_set(str(path))
        assert [f.name for f in loaded.file] == ["orders.proto"]

    def test_missing_descriptor_set(self, tmp_path):
        with pytest.raises(DescriptorLoadError):
            load_descriptor_set(str(tmp_path / "missing.pb"))

    def test_corrupt_descriptor_set(self, tmp_path):
        path = tmp_path / "corrupt.pb"
        path.write_bytes(b"\x0a\xff\xff")
        with pytest.raises(DescriptorLoadError):
            load_descriptor_set(str(path))

    def test_select_file(self):
        fds = d2.FileDescriptorSet()
        fds.file.add(name="common/levels.proto")
        fds.file.append(make_orders_file())

        assert select_file(fds, "protos/orders.proto").name == "orders.proto"
        assert select_file(fds, "levels.proto").name == "common/levels.proto"
        with pytest.raises(DescriptorLoadError):
            select_file(fds, "missing.proto")

    def test_select_single_file_fallback(self):
        fds = d2.FileDescriptorSet()
        fds.file.append(make_orders_file())
        assert select_file(fds, "renamed.proto").name == "orders.proto"


@pytest.mark.skipif(not HAS_PROTOC, reason="protoc not installed")
class TestProtoc:
    def test_compile_descriptor_set(self, tmp_path):
        proto_path = tmp_path / "orders.proto"
        proto_path.write_text(ORDERS_PROTO)

        fds = compile_descriptor_set(str(proto_path))
        file = convert_file(select_file(fds, str(proto_path)))

        assert [m.full_name for m in file.messages] == ["shop.Order", "shop.Order.Line"]
        assert file.messages[0].fields[0].type_name == "shop.Level"

    def test_protoc_error(self, tmp_path):
        proto_path = tmp_path / "broken.proto"
        proto_path.write_text("syntax = \"proto3\";\nmessage {\n")

        with pytest.raises(DescriptorLoadError, match="protoc failed"):
            compile_descriptor_set(str(proto_path))
