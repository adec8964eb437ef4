"""Read and write XML property lists through macOS CoreFoundation."""

from __future__ import annotations

import functools

from _cfplist_core.codec import PlistCodec
from _cfplist_core.errors import ArityError
from _cfplist_core.errors import LinkError
from _cfplist_core.errors import NotFoundError
from _cfplist_core.errors import ParseError
from _cfplist_core.errors import PlistError
from _cfplist_core.errors import PlistIOError
from _cfplist_core.errors import SchemaError
from _cfplist_core.errors import SerializationError
from _cfplist_core.errors import TypeConversionError
from _cfplist_core.errors import TypeMismatchError
from _cfplist_core.registry import FRAMEWORK_PATH
from _cfplist_core.registry import BindingRegistry
from _cfplist_core.registry import NativeImage

type PlistValue = str | bool | list[PlistValue] | dict[str, PlistValue]


@functools.cache
def default_codec() -> PlistCodec:
    """The process-wide codec bound to the system CoreFoundation framework.

    Returns:
        A codec shared by every call to :func:`read_plist` and
        :func:`write_plist`.
    """
    return PlistCodec(BindingRegistry(NativeImage(FRAMEWORK_PATH)))


def read(path: object, /) -> dict[str, PlistValue]:
    """Load the dictionary stored in an XML property list file.

    Returns:
        The root dictionary as nested dict/list/str/bool structures.
    """
    return default_codec().read(path)


def write(value: object, path: object, /) -> bool:
    """Write a mapping to ``path`` as an XML property list.

    Returns:
        ``True`` once the file is written; failures raise.
    """
    return default_codec().write(value, path)


read_plist = read
write_plist = write

__all__ = [
    "ArityError",
    "BindingRegistry",
    "LinkError",
    "NativeImage",
    "NotFoundError",
    "ParseError",
    "PlistCodec",
    "PlistError",
    "PlistIOError",
    "PlistValue",
    "SchemaError",
    "SerializationError",
    "TypeConversionError",
    "TypeMismatchError",
    "default_codec",
    "read",
    "read_plist",
    "write",
    "write_plist",
]
