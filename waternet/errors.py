"""Typed failures raised by the network model and its analyzers.

Each error also derives from the builtin exception a caller would naturally
catch (``ValueError``, ``LookupError``, ``RuntimeError``), so code that only
knows about builtins keeps working.
"""


class NetworkError(Exception):
    """Base class for every failure raised by :mod:`waternet`."""


class DuplicateIdError(NetworkError, ValueError):
    """A node with the same id already exists in the network."""


class NotFoundError(NetworkError, LookupError):
    """An id is absent from the network or names the wrong kind of node."""


class InvalidArgumentError(NetworkError, ValueError):
    """A numeric parameter, coordinate or connection request is invalid."""


class PreconditionError(NetworkError, RuntimeError):
    """The network is not in a shape the requested algorithm supports."""
