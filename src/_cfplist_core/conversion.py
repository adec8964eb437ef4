"""Recursive conversion between Python values and CoreFoundation objects."""

from __future__ import annotations

import ctypes
import enum
import logging
from collections.abc import Mapping
from typing import Any

from _cfplist_core.corefoundation import FALSE
from _cfplist_core.corefoundation import KCF_STRING_ENCODING_UTF8
from _cfplist_core.corefoundation import CFDictionaryApplierFunction
from _cfplist_core.corefoundation import CoreFoundation
from _cfplist_core.errors import TypeConversionError
from _cfplist_core.ownership import OwnedHandle
from _cfplist_core.ownership import auto_release

log = logging.getLogger(__name__)

PlistValue = str | bool | list[Any] | dict[str, Any]
ForeignRef = OwnedHandle | int


class ForeignKind(enum.Enum):
    STRING = "CFString"
    DICTIONARY = "CFDictionary"
    ARRAY = "CFArray"
    BOOLEAN = "CFBoolean"


class ValueConverter:
    """Maps ``str``/``list``/``dict``/``bool`` trees onto CoreFoundation.

    Every object created on the way in is an :class:`OwnedHandle`; the
    containers retain their children, so intermediate handles can be
    dropped as soon as they have been inserted.
    """

    def __init__(self, cf: CoreFoundation) -> None:
        super().__init__()
        self.cf = cf
        self._kinds: dict[int, ForeignKind] | None = None

    # Python -> CoreFoundation -------------------------------------------------
    def to_foreign(self, value: object) -> ForeignRef:
        """Convert ``value`` into a new CoreFoundation object.

        Strings, mappings, lists/tuples and booleans map onto their
        CoreFoundation counterparts. Anything else is stored as ``str(value)``
        since there are no number or date nodes on this side.

        Returns:
            A non-null reference to the converted object.

        Raises:
            TypeConversionError: If CoreFoundation could not build the object.
        """
        if isinstance(value, str):
            result = self._string(value)
        elif isinstance(value, Mapping):
            result = self._dictionary(value)
        elif isinstance(value, (list, tuple)):
            result = self._array(value)
        elif isinstance(value, bool):
            result = self.cf.boolean(value)
        else:
            log.debug("storing %s value %r as a string", type(value).__name__, value)
            result = self._string(str(value))
        if not result:
            msg = f"unable to convert {value!r} into a CoreFoundation object"
            raise TypeConversionError(msg)
        return result

    def _string(self, text: str) -> OwnedHandle | int | None:
        try:
            data = text.encode("utf-8")
        except UnicodeEncodeError as exc:
            msg = f"{text!r} is not representable as UTF-8"
            raise TypeConversionError(msg) from exc
        return self.cf.CFStringCreateWithBytes(
            None,
            data,
            len(data),
            KCF_STRING_ENCODING_UTF8,
            FALSE,
        )

    def _dictionary(self, mapping: Mapping[Any, Any]) -> OwnedHandle | int | None:
        key_callbacks, value_callbacks = self.cf.dictionary_callbacks()
        dictionary = self.cf.CFDictionaryCreateMutable(
            None,
            0,
            key_callbacks,
            value_callbacks,
        )
        if not dictionary:
            return dictionary
        for key, value in mapping.items():
            # keys collapse onto their string form; a later duplicate replaces
            # the earlier entry
            foreign_key = self.to_foreign(str(key))
            foreign_value = self.to_foreign(value)
            self.cf.CFDictionarySetValue(dictionary, foreign_key, foreign_value)
        return dictionary

    def _array(self, items: list[Any] | tuple[Any, ...]) -> OwnedHandle | int | None:
        array = self.cf.CFArrayCreateMutable(None, 0, self.cf.array_callbacks())
        if not array:
            return array
        for item in items:
            self.cf.CFArrayAppendValue(array, self.to_foreign(item))
        return array

    # CoreFoundation -> Python -------------------------------------------------
    def kind_of(self, ref: ForeignRef) -> ForeignKind | None:
        """The supported kind of ``ref``, or ``None`` for any other type."""
        if self._kinds is None:
            cf = self.cf
            self._kinds = {
                cf.CFStringGetTypeID(): ForeignKind.STRING,
                cf.CFDictionaryGetTypeID(): ForeignKind.DICTIONARY,
                cf.CFArrayGetTypeID(): ForeignKind.ARRAY,
                cf.CFBooleanGetTypeID(): ForeignKind.BOOLEAN,
            }
        return self._kinds.get(self.cf.CFGetTypeID(ref))

    def from_foreign(self, ref: ForeignRef | None) -> PlistValue:
        """Convert a CoreFoundation object back into plain Python values.

        Only strings, dictionaries, arrays and booleans are understood;
        numbers, dates and data nodes are rejected.

        Returns:
            The converted ``str``, ``bool``, ``list`` or ``dict``.

        Raises:
            TypeConversionError: If ``ref`` is null or of an unsupported type.
        """
        if not ref:
            msg = "cannot convert a null CoreFoundation reference"
            raise TypeConversionError(msg)
        match self.kind_of(ref):
            case ForeignKind.STRING:
                return self._python_string(ref)
            case ForeignKind.DICTIONARY:
                return self._python_dict(ref)
            case ForeignKind.ARRAY:
                return self._python_list(ref)
            case ForeignKind.BOOLEAN:
                return int(ref) == self.cf.boolean(True)
            case _:
                msg = f"unsupported CoreFoundation type: {self.describe(ref)}"
                raise TypeConversionError(msg)

    def _python_string(self, ref: ForeignRef) -> str:
        data = self.cf.CFStringCreateExternalRepresentation(
            None,
            ref,
            KCF_STRING_ENCODING_UTF8,
            0,
        )
        if not data:
            msg = "unable to convert CoreFoundation string"
            raise TypeConversionError(msg)
        with data:
            length = self.cf.CFDataGetLength(data)
            raw = ctypes.string_at(self.cf.CFDataGetBytePtr(data), length) if length else b""
        return raw.decode("utf-8")

    def _python_dict(self, ref: ForeignRef) -> dict[str, Any]:
        pairs: list[tuple[int | None, int | None]] = []

        def collect(key: int | None, value: int | None, context: int | None) -> None:
            pairs.append((key, value))

        # exceptions raised inside the applier do not cross the ctypes boundary
        applier = CFDictionaryApplierFunction(collect)
        self.cf.CFDictionaryApplyFunction(ref, applier, None)
        result: dict[str, Any] = {}
        for key, value in pairs:
            if not key:
                msg = "dictionary contains a null key"
                raise TypeConversionError(msg)
            if self.kind_of(key) is not ForeignKind.STRING:
                msg = f"dictionary keys must be strings, got {self.describe(key)}"
                raise TypeConversionError(msg)
            result[self._python_string(key)] = self.from_foreign(value)
        return result

    def _python_list(self, ref: ForeignRef) -> list[Any]:
        count = self.cf.CFArrayGetCount(ref)
        return [
            self.from_foreign(self.cf.CFArrayGetValueAtIndex(ref, index))
            for index in range(count)
        ]

    def describe(self, ref: ForeignRef) -> str:
        """Human-readable ``CFCopyDescription`` of ``ref`` for error messages."""
        description = auto_release(self.cf.CFCopyDescription(ref), self.cf.CFRelease)
        if not isinstance(description, OwnedHandle):
            return "<no description>"
        with description:
            return self._python_string(description)
