"""Write and read XML property lists through CoreFoundation file streams."""

from __future__ import annotations

import contextlib
import ctypes
import logging
import os
import secrets
import shutil
from collections.abc import Callable

from _cfplist_core.conversion import ForeignKind
from _cfplist_core.conversion import ForeignRef
from _cfplist_core.conversion import ValueConverter
from _cfplist_core.corefoundation import FALSE
from _cfplist_core.corefoundation import KCF_PROPERTY_LIST_IMMUTABLE
from _cfplist_core.corefoundation import KCF_PROPERTY_LIST_XML_FORMAT_V1_0
from _cfplist_core.corefoundation import TRUE
from _cfplist_core.errors import ParseError
from _cfplist_core.errors import PlistIOError
from _cfplist_core.errors import SchemaError
from _cfplist_core.errors import SerializationError
from _cfplist_core.ownership import OwnedHandle
from _cfplist_core.ownership import auto_release

log = logging.getLogger(__name__)

StreamFunction = Callable[[ForeignRef], object]


class _OpenedStream:
    """Opens a stream on entry and closes it exactly once on exit.

    A stream that fails to open is never closed.
    """

    def __init__(
        self,
        stream: ForeignRef,
        open_stream: StreamFunction,
        close_stream: StreamFunction,
        path: str,
    ) -> None:
        super().__init__()
        self._stream = stream
        self._open = open_stream
        self._close = close_stream
        self._path = path

    def __enter__(self) -> ForeignRef:
        if self._open(self._stream) != TRUE:
            msg = f"unable to open stream for {self._path!r}"
            raise PlistIOError(msg)
        log.debug("opened stream for %s", self._path)
        return self._stream

    def __exit__(self, *exc_info: object) -> None:
        self._close(self._stream)
        log.debug("closed stream for %s", self._path)


class StreamPipeline:
    """Moves a CoreFoundation object graph to and from a file.

    Each call owns exactly one stream, opened and closed within the call.
    The stream is closed whether serialization succeeds, fails or raises.
    """

    def __init__(self, converter: ValueConverter) -> None:
        super().__init__()
        self.converter = converter
        self.cf = converter.cf

    def write(self, root: ForeignRef, path: str) -> None:
        """Serialize ``root`` to ``path`` as an XML 1.0 property list.

        The data goes to a sibling staging file that replaces ``path`` only
        once it has been written completely; on failure ``path`` is left
        as it was.

        Raises:
            PlistIOError: If the stream cannot be created or opened.
            SerializationError: If CoreFoundation fails to write the data.
        """
        staging = _staging_path(path)
        try:
            written = self._write_stream(root, staging, path)
            try:
                if os.path.exists(path):
                    shutil.copymode(path, staging)
                os.replace(staging, path)
            except OSError as exc:
                msg = f"unable to move plist data into place at {path!r}: {exc}"
                raise PlistIOError(msg) from exc
        finally:
            # gone already once it has replaced the target
            _discard(staging)
        log.debug("wrote %d bytes to %s", written, path)

    def _write_stream(self, root: ForeignRef, staging: str, path: str) -> int:
        cf = self.cf
        url = self._url(staging)
        stream = self._checked(cf.CFWriteStreamCreateWithFile(None, url), path)
        with _OpenedStream(stream, cf.CFWriteStreamOpen, cf.CFWriteStreamClose, path):
            error = ctypes.c_void_p()
            written = cf.CFPropertyListWrite(
                root,
                stream,
                KCF_PROPERTY_LIST_XML_FORMAT_V1_0,
                0,
                ctypes.byref(error),
            )
            if written == 0:
                detail = self._error_detail(error)
                log.error("unable to write plist data to %s: %s", path, detail)
                msg = f"unable to write plist data to {path!r}: {detail}"
                raise SerializationError(msg)
        return written

    def read(self, path: str) -> OwnedHandle:
        """Parse the property list stored at ``path``.

        Returns:
            The owned root dictionary.

        Raises:
            PlistIOError: If the stream cannot be created or opened.
            ParseError: If CoreFoundation cannot parse the file.
            SchemaError: If the root object is not a dictionary.
        """
        cf = self.cf
        url = self._url(path)
        stream = self._checked(cf.CFReadStreamCreateWithFile(None, url), path)
        with _OpenedStream(stream, cf.CFReadStreamOpen, cf.CFReadStreamClose, path):
            error = ctypes.c_void_p()
            plist = cf.CFPropertyListCreateWithStream(
                None,
                stream,
                0,
                KCF_PROPERTY_LIST_IMMUTABLE,
                None,
                ctypes.byref(error),
            )
            if not isinstance(plist, OwnedHandle):
                detail = self._error_detail(error)
                log.error("unable to read plist data from %s: %s", path, detail)
                msg = f"unable to read plist data from {path!r}: {detail}"
                raise ParseError(msg)
            try:
                if self.converter.kind_of(plist) is not ForeignKind.DICTIONARY:
                    msg = f"root of {path!r} must be a mapping (dictionary)"
                    raise SchemaError(msg)
            except BaseException:
                plist.release()
                raise
        return plist

    def _url(self, path: str) -> ForeignRef:
        encoded = os.fsencode(path)
        url = self.cf.CFURLCreateFromFileSystemRepresentation(
            None,
            encoded,
            len(encoded),
            FALSE,
        )
        if not url:
            msg = f"unable to create a file URL for {path!r}"
            raise PlistIOError(msg)
        return url

    @staticmethod
    def _checked(stream: OwnedHandle | int | None, path: str) -> ForeignRef:
        if not stream:
            msg = f"unable to create stream for {path!r}"
            raise PlistIOError(msg)
        return stream

    def _error_detail(self, error: ctypes.c_void_p) -> str:
        # the caller owns any error object left in the slot
        owned = auto_release(error.value, self.cf.CFRelease)
        if not isinstance(owned, OwnedHandle):
            return "no error reported"
        with owned:
            return self.converter.describe(owned)


def _staging_path(path: str) -> str:
    directory, name = os.path.split(path)
    return os.path.join(directory, f".{name}.{secrets.token_hex(4)}.tmp")


def _discard(path: str) -> None:
    with contextlib.suppress(FileNotFoundError):
        os.remove(path)
