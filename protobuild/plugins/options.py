# SPDX-License-Identifier: MIT
"""Access to boolean custom options without generated extension modules.

Custom options (extensions of the google.protobuf.*Options messages)
arrive in a CodeGeneratorRequest as fields protobuild has no generated
code for. BoolOption reads and writes one such field by its number: it
builds a one-field message with that number in a private descriptor pool
and moves the option's wire data through it.
"""

from __future__ import annotations

from functools import cache

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import Message

_FLAG_FIELD = "value"


@cache
def _flag_message_class(number: int) -> type[Message]:
    """A message class with a single optional bool field numbered number."""
    package = f"protobuild.option{number}"
    file_proto = descriptor_pb2.FileDescriptorProto(
        name=f"protobuild/option_{number}.proto",
        package=package,
        syntax="proto2",
    )
    flag = file_proto.message_type.add(name="Flag")
    flag.field.add(
        name=_FLAG_FIELD,
        number=number,
        type=descriptor_pb2.FieldDescriptorProto.TYPE_BOOL,
        label=descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL,
    )
    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(file_proto.SerializeToString())
    descriptor = pool.FindMessageTypeByName(f"{package}.Flag")
    return message_factory.GetMessageClass(descriptor)


class BoolOption:
    """A bool custom option, identified by extension field number.

    Example:
        DBENUM = BoolOption("dbenum.enumvalue", 65020)
        if DBENUM.get(value.options):
            ...
        STRINGER.set_default(file.options, False)
    """

    def __init__(self, name: str, number: int) -> None:
        if number <= 0:
            raise ValueError(f"invalid field number for option {name}: {number}")
        self.name = name
        self.number = number

    def get(self, options: Message) -> bool | None:
        """Return the option's value in options, or None if unset."""
        flag = _flag_message_class(self.number)()
        flag.ParseFromString(options.SerializeToString())
        if not flag.HasField(_FLAG_FIELD):
            return None
        return bool(getattr(flag, _FLAG_FIELD))

    def is_set(self, options: Message) -> bool:
        return self.get(options) is not None

    def set(self, options: Message, value: bool) -> None:
        """Set the option in options, replacing any previous value."""
        flag = _flag_message_class(self.number)(**{_FLAG_FIELD: value})
        options.MergeFromString(flag.SerializeToString())

    def set_default(self, options: Message, value: bool) -> bool:
        """Set the option unless options already sets it.

        Returns:
            True if the option was set by this call.
        """
        if self.is_set(options):
            return False
        self.set(options, value)
        return True

    def __repr__(self) -> str:
        return f"BoolOption({self.name!r}, {self.number})"
