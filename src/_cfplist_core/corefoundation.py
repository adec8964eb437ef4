"""The slice of CoreFoundation the property-list codec talks to."""

from __future__ import annotations

import ctypes
from typing import Final

from _cfplist_core.registry import BindingRegistry


CFTypeRef = ctypes.c_void_p
CFTypeRefPointer = ctypes.POINTER(ctypes.c_void_p)
CFIndex = ctypes.c_long
CFTypeID = ctypes.c_ulong
CFOptionFlags = ctypes.c_ulong
CFStringEncoding = ctypes.c_uint32
CFPropertyListFormat = CFIndex
CFPropertyListFormatPointer = ctypes.POINTER(CFIndex)
Boolean = ctypes.c_ubyte
UInt8Pointer = ctypes.c_char_p

CFDictionaryApplierFunction = ctypes.CFUNCTYPE(
    None,
    ctypes.c_void_p,
    ctypes.c_void_p,
    ctypes.c_void_p,
)

KCF_PROPERTY_LIST_IMMUTABLE: Final = 0
KCF_PROPERTY_LIST_XML_FORMAT_V1_0: Final = 100
KCF_STRING_ENCODING_UTF8: Final = 0x08000100
TRUE: Final = 1
FALSE: Final = 0


class CoreFoundation:
    """Bound CoreFoundation functions and exported constants.

    Attribute names match the C symbols so call sites read like the
    CoreFoundation documentation. Nothing is looked up until first use.
    """

    def __init__(self, registry: BindingRegistry) -> None:
        super().__init__()
        self.registry = registry
        bind = registry.bind

        self.CFRelease = registry.release_function
        self.CFGetTypeID = bind("CFGetTypeID", [CFTypeRef], CFTypeID)
        self.CFCopyDescription = bind("CFCopyDescription", [CFTypeRef], CFTypeRef)

        self.CFStringGetTypeID = bind("CFStringGetTypeID", [], CFTypeID)
        self.CFDictionaryGetTypeID = bind("CFDictionaryGetTypeID", [], CFTypeID)
        self.CFArrayGetTypeID = bind("CFArrayGetTypeID", [], CFTypeID)
        self.CFBooleanGetTypeID = bind("CFBooleanGetTypeID", [], CFTypeID)

        # URLs and streams
        self.CFURLCreateFromFileSystemRepresentation = bind(
            "CFURLCreateFromFileSystemRepresentation",
            [CFTypeRef, UInt8Pointer, CFIndex, Boolean],
            CFTypeRef,
        )
        self.CFWriteStreamCreateWithFile = bind(
            "CFWriteStreamCreateWithFile",
            [CFTypeRef, CFTypeRef],
            CFTypeRef,
        )
        self.CFWriteStreamOpen = bind("CFWriteStreamOpen", [CFTypeRef], Boolean)
        self.CFWriteStreamClose = bind("CFWriteStreamClose", [CFTypeRef], None)
        self.CFReadStreamCreateWithFile = bind(
            "CFReadStreamCreateWithFile",
            [CFTypeRef, CFTypeRef],
            CFTypeRef,
        )
        self.CFReadStreamOpen = bind("CFReadStreamOpen", [CFTypeRef], Boolean)
        self.CFReadStreamClose = bind("CFReadStreamClose", [CFTypeRef], None)

        # Property lists
        self.CFPropertyListWrite = bind(
            "CFPropertyListWrite",
            [CFTypeRef, CFTypeRef, CFPropertyListFormat, CFOptionFlags, CFTypeRefPointer],
            CFIndex,
        )
        self.CFPropertyListCreateWithStream = bind(
            "CFPropertyListCreateWithStream",
            [
                CFTypeRef,
                CFTypeRef,
                CFIndex,
                CFOptionFlags,
                CFPropertyListFormatPointer,
                CFTypeRefPointer,
            ],
            CFTypeRef,
        )

        # Strings and data
        self.CFStringCreateWithBytes = bind(
            "CFStringCreateWithBytes",
            [CFTypeRef, UInt8Pointer, CFIndex, CFStringEncoding, Boolean],
            CFTypeRef,
        )
        self.CFStringCreateExternalRepresentation = bind(
            "CFStringCreateExternalRepresentation",
            [CFTypeRef, CFTypeRef, CFStringEncoding, ctypes.c_uint8],
            CFTypeRef,
        )
        self.CFDataGetLength = bind("CFDataGetLength", [CFTypeRef], CFIndex)
        self.CFDataGetBytePtr = bind("CFDataGetBytePtr", [CFTypeRef], ctypes.c_void_p)

        # Collections
        self.CFDictionaryCreateMutable = bind(
            "CFDictionaryCreateMutable",
            [CFTypeRef, CFIndex, ctypes.c_void_p, ctypes.c_void_p],
            CFTypeRef,
        )
        self.CFDictionarySetValue = bind(
            "CFDictionarySetValue",
            [CFTypeRef, CFTypeRef, CFTypeRef],
            None,
        )
        self.CFDictionaryApplyFunction = bind(
            "CFDictionaryApplyFunction",
            [CFTypeRef, CFDictionaryApplierFunction, ctypes.c_void_p],
            None,
        )
        self.CFArrayCreateMutable = bind(
            "CFArrayCreateMutable",
            [CFTypeRef, CFIndex, ctypes.c_void_p],
            CFTypeRef,
        )
        self.CFArrayAppendValue = bind("CFArrayAppendValue", [CFTypeRef, CFTypeRef], None)
        self.CFArrayGetCount = bind("CFArrayGetCount", [CFTypeRef], CFIndex)
        self.CFArrayGetValueAtIndex = bind(
            "CFArrayGetValueAtIndex",
            [CFTypeRef, CFIndex],
            CFTypeRef,
        )

    # Exported variables ------------------------------------------------------
    def boolean(self, value: bool) -> int | None:
        """The ``kCFBooleanTrue`` or ``kCFBooleanFalse`` singleton.

        CFBoolean has no constructor; the singletons are only reachable
        through the exported pointer variables, which are dereferenced here.

        Returns:
            The singleton's address.
        """
        symbol = "kCFBooleanTrue" if value else "kCFBooleanFalse"
        return ctypes.c_void_p.from_address(self.registry.address_of(symbol)).value

    def dictionary_callbacks(self) -> tuple[int, int]:
        return (
            self.registry.address_of("kCFTypeDictionaryKeyCallBacks"),
            self.registry.address_of("kCFTypeDictionaryValueCallBacks"),
        )

    def array_callbacks(self) -> int:
        return self.registry.address_of("kCFTypeArrayCallBacks")
