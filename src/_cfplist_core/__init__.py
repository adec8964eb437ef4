"""CoreFoundation-backed implementation behind :mod:`cfplist`."""

from beartype.claw import beartype_this_package

beartype_this_package()
