"""Release tracking for foreign objects returned by creating calls."""

from __future__ import annotations

import logging
import weakref
from collections.abc import Callable

log = logging.getLogger(__name__)

ReleaseFunction = Callable[[int], object]


def _release(release_fn: ReleaseFunction, address: int) -> None:
    log.debug("releasing foreign object 0x%x", address)
    release_fn(address)


class OwnedHandle:
    """A foreign object address carrying exactly one release obligation.

    The obligation is discharged by :meth:`release`, by leaving a ``with``
    block, or, failing both, when the handle is garbage collected.
    Whichever comes first wins; the release function never runs twice.
    """

    __slots__ = ("__weakref__", "_address", "_finalizer")

    def __init__(self, address: int, release_fn: ReleaseFunction) -> None:
        super().__init__()
        self._address = address
        self._finalizer = weakref.finalize(self, _release, release_fn, address)
        # the foreign heap goes away with the process
        self._finalizer.atexit = False

    @property
    def address(self) -> int:
        return self._address

    @property
    def released(self) -> bool:
        return not self._finalizer.alive

    @property
    def _as_parameter_(self) -> int:
        if self.released:
            msg = f"foreign object 0x{self._address:x} was already released"
            raise ValueError(msg)
        return self._address

    def release(self) -> None:
        """Release the foreign object now if it has not been released yet."""
        self._finalizer()

    def __enter__(self) -> OwnedHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def __int__(self) -> int:
        return self._address

    def __eq__(self, other: object) -> bool:
        if isinstance(other, OwnedHandle):
            return self._address == other._address
        if isinstance(other, int):
            return self._address == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._address)

    def __repr__(self) -> str:
        state = "released" if self.released else "owned"
        return f"OwnedHandle(0x{self._address:x}, {state})"


def auto_release(
    handle: OwnedHandle | int | None,
    release_fn: ReleaseFunction,
) -> OwnedHandle | int | None:
    """Attach ``release_fn`` to ``handle`` so it runs once the handle dies.

    Null handles own nothing and come back unchanged, as do handles that
    are already tracked.

    Returns:
        The tracked handle, or the null handle as given.
    """
    if not handle or isinstance(handle, OwnedHandle):
        return handle
    return OwnedHandle(handle, release_fn)
