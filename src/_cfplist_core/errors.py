"""Exceptions raised by the CoreFoundation property-list codec."""

from __future__ import annotations


class PlistError(Exception):
    """Base class for every error raised by the codec."""


class TypeMismatchError(PlistError, TypeError):
    """Raised when a root value or path has the wrong Python type."""


class LinkError(PlistError, OSError):
    """Raised when a native symbol or image cannot be resolved."""


class ArityError(PlistError, TypeError):
    """Raised when a binding is called with the wrong number of arguments."""


class PlistIOError(PlistError, OSError):
    """Raised when a stream cannot be created or opened."""


class SerializationError(PlistError, ValueError):
    """Raised when the native writer reports a failure."""


class ParseError(PlistError, ValueError):
    """Raised when the native parser reports a failure."""


class SchemaError(PlistError, ValueError):
    """Raised when a parsed document's root is not a dictionary."""


class TypeConversionError(PlistError, TypeError):
    """Raised when a value has no representation on the other side."""


class NotFoundError(PlistError, FileNotFoundError):
    """Raised when the property-list file to read does not exist."""
