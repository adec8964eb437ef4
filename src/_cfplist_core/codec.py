"""Entry points that validate input and drive the conversion pipeline."""

from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Mapping
from typing import Any
from typing import cast

from _cfplist_core.conversion import ValueConverter
from _cfplist_core.corefoundation import CoreFoundation
from _cfplist_core.errors import NotFoundError
from _cfplist_core.errors import TypeMismatchError
from _cfplist_core.ownership import OwnedHandle
from _cfplist_core.registry import BindingRegistry
from _cfplist_core.streams import StreamPipeline

log = logging.getLogger(__name__)


class PlistCodec:
    """Reads and writes XML property lists whose root is a dictionary.

    One codec wraps one :class:`BindingRegistry`; build it once and share
    it, since the registry caches every symbol it resolves.
    """

    def __init__(self, registry: BindingRegistry) -> None:
        super().__init__()
        self.registry = registry
        self.cf = CoreFoundation(registry)
        self.converter = ValueConverter(self.cf)
        self.pipeline = StreamPipeline(self.converter)

    def write(self, value: object, path: object) -> bool:
        """Serialize a mapping as an XML property list file.

        ``value`` may be a mapping, a dataclass instance, or any object
        whose ``to_dict()`` returns a mapping. Values that are not strings,
        sequences, mappings or booleans are written as their ``str()``.

        Returns:
            ``True`` once the file has been written.

        Raises:
            TypeMismatchError: If ``value`` or ``path`` has the wrong type.
        """
        mapping = _as_mapping(value)
        target = _as_path(path)
        log.debug("writing plist to %s", target)
        root = self.converter.to_foreign(mapping)
        try:
            self.pipeline.write(root, target)
        finally:
            if isinstance(root, OwnedHandle):
                root.release()
        return True

    def read(self, path: object) -> dict[str, Any]:
        """Load the dictionary stored in the property list at ``path``.

        Returns:
            The root dictionary as nested ``dict``/``list``/``str``/``bool``.

        Raises:
            TypeMismatchError: If ``path`` is not a string or path-like.
            NotFoundError: If nothing exists at ``path``.
        """
        target = _as_path(path)
        if not os.path.exists(target):
            msg = f"the plist file at path {target!r} doesn't exist"
            raise NotFoundError(msg)
        log.debug("reading plist from %s", target)
        with self.pipeline.read(target) as plist:
            return cast("dict[str, Any]", self.converter.from_foreign(plist))


def _as_mapping(value: object) -> Mapping[Any, Any]:
    if isinstance(value, Mapping):
        return value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        converted = to_dict()
        if isinstance(converted, Mapping):
            return converted
    msg = f"the given {value!r} must be a mapping or provide to_dict()"
    raise TypeMismatchError(msg)


def _as_path(path: object) -> str:
    if not isinstance(path, (str, os.PathLike)):
        msg = f"the given {path!r} must be a string or path-like object"
        raise TypeMismatchError(msg)
    return os.fsdecode(os.fspath(path))
