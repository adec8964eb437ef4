"""Typed, cached bindings to functions exported by a native image."""

from __future__ import annotations

import ctypes
import logging
import threading
from collections.abc import Callable
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final
from typing import Protocol
from typing import runtime_checkable

from _cfplist_core.errors import ArityError
from _cfplist_core.errors import LinkError
from _cfplist_core.ownership import OwnedHandle
from _cfplist_core.ownership import auto_release

log = logging.getLogger(__name__)

FRAMEWORK_PATH: Final = (
    "/System/Library/Frameworks/CoreFoundation.framework/CoreFoundation"
)
CREATE_MARKER: Final = "Create"
RELEASE_SYMBOL: Final = "CFRelease"


@runtime_checkable
class Image(Protocol):
    def address_of(self, symbol: str, /) -> int: ...


class NativeImage:
    """A shared library loaded with :mod:`ctypes` on first lookup."""

    def __init__(self, path: str = FRAMEWORK_PATH) -> None:
        super().__init__()
        self.path = path
        self._library: ctypes.CDLL | None = None

    def load(self) -> ctypes.CDLL:
        """Load the library if that has not happened yet.

        Returns:
            The loaded library.

        Raises:
            LinkError: If the library cannot be loaded.
        """
        if self._library is None:
            try:
                self._library = ctypes.CDLL(self.path)
            except OSError as exc:
                msg = f"unable to load native image {self.path!r}"
                raise LinkError(msg) from exc
        return self._library

    def address_of(self, symbol: str, /) -> int:
        """Look up an exported function or variable.

        Returns:
            The address of ``symbol`` inside the loaded image.

        Raises:
            LookupError: If the image does not export ``symbol``.
        """
        try:
            exported = ctypes.c_byte.in_dll(self.load(), symbol)
        except ValueError as exc:
            raise LookupError(symbol) from exc
        return ctypes.addressof(exported)


@dataclass(frozen=True, slots=True)
class Signature:
    param_types: tuple[type, ...]
    return_type: type | None


class Binding:
    """A named native function, resolved on first call.

    Calls are checked for arity and for released handles before anything
    reaches native code. When
    the symbol name contains ``"Create"`` the caller owns the result, so
    non-null results come back as :class:`OwnedHandle`.
    """

    def __init__(
        self,
        registry: BindingRegistry,
        symbol: str,
        signature: Signature,
    ) -> None:
        super().__init__()
        self.symbol = symbol
        self.signature = signature
        self.creates = CREATE_MARKER in symbol
        self._registry = registry
        self._function: Callable[..., object] | None = None

    @property
    def resolved(self) -> bool:
        return self._function is not None

    def __call__(self, *args: object) -> object:
        expected = len(self.signature.param_types)
        if len(args) != expected:
            msg = (
                f"{self.symbol}() takes {expected} argument(s) "
                f"but {len(args)} were given"
            )
            raise ArityError(msg)
        for position, arg in enumerate(args, start=1):
            if isinstance(arg, OwnedHandle) and arg.released:
                msg = (
                    f"{self.symbol}() argument {position}: foreign object "
                    f"0x{arg.address:x} was already released"
                )
                raise ValueError(msg)
        function = self._function
        if function is None:
            function = self._registry.resolve(self)
        result = function(*args)
        if self.creates:
            return auto_release(result, self._registry.release_function)
        return result

    def _install(self, function: Callable[..., object]) -> None:
        self._function = function

    def __repr__(self) -> str:
        return f"Binding({self.symbol!r}, resolved={self.resolved})"


class BindingRegistry:
    """Process-wide cache of bindings against one native image.

    Each symbol is declared once with an immutable signature and looked up
    in the image at most once. Lookups hold a reentrant lock: the registry
    may be shared between threads, and a finalizer releasing a handle may
    need ``CFRelease`` resolved while another lookup is in progress.
    """

    def __init__(self, image: Image, release_symbol: str = RELEASE_SYMBOL) -> None:
        super().__init__()
        self.image = image
        self._lock = threading.RLock()
        self._bindings: dict[str, Binding] = {}
        self._addresses: dict[str, int] = {}
        self.release_function = self.bind(release_symbol, (ctypes.c_void_p,), None)

    def bind(
        self,
        symbol: str,
        param_types: Sequence[type],
        return_type: type | None,
    ) -> Binding:
        """Declare ``symbol`` with its parameter and return types.

        Returns:
            The binding for ``symbol``; an existing one when it was already
            declared with the same signature.

        Raises:
            LinkError: If ``symbol`` was declared with another signature.
        """
        signature = Signature(tuple(param_types), return_type)
        with self._lock:
            existing = self._bindings.get(symbol)
            if existing is not None:
                if existing.signature != signature:
                    msg = f"{symbol} is already bound with a different signature"
                    raise LinkError(msg)
                return existing
            binding = Binding(self, symbol, signature)
            self._bindings[symbol] = binding
            return binding

    def resolve(self, binding: Binding) -> Callable[..., object]:
        """Build the typed callable for ``binding`` if nobody has yet.

        Returns:
            The native callable installed on ``binding``.

        Raises:
            LinkError: If the image does not export the symbol.
        """
        with self._lock:
            if binding._function is not None:  # noqa: SLF001
                return binding._function  # noqa: SLF001
            address = self._lookup(binding.symbol)
            prototype = ctypes.CFUNCTYPE(
                binding.signature.return_type,
                *binding.signature.param_types,
            )
            function = prototype(address)
            if binding._function is not None:  # noqa: SLF001
                # resolved by a finalizer that ran during the lookup
                return binding._function  # noqa: SLF001
            binding._install(function)  # noqa: SLF001
            log.debug("resolved %s at 0x%x", binding.symbol, address)
            return function

    def address_of(self, symbol: str) -> int:
        """Address of an exported variable such as ``kCFBooleanTrue``.

        Returns:
            The cached address of ``symbol``.

        Raises:
            LinkError: If the image does not export the symbol.
        """
        with self._lock:
            address = self._addresses.get(symbol)
            if address is None:
                address = self._lookup(symbol)
                self._addresses[symbol] = address
                log.debug("found data symbol %s at 0x%x", symbol, address)
            return address

    @property
    def resolved(self) -> frozenset[str]:
        return frozenset(
            symbol for symbol, binding in self._bindings.items() if binding.resolved
        )

    def _lookup(self, symbol: str) -> int:
        try:
            return self.image.address_of(symbol)
        except LookupError as exc:
            msg = f"symbol {symbol!r} not found in native image"
            raise LinkError(msg) from exc

