"""Exceptions raised by the dose calculator."""


class DoseCalcError(Exception):
    """Base class for calculator errors shown to the user."""


class SessionStateError(DoseCalcError):
    """An action needs session state that is not there yet (no regimen, no result, no name)."""


class StorageError(DoseCalcError):
    """The local store could not complete a read or write."""
