"""
Exception types used inside natcmd.

These never cross a public contract: the resolver, AI fallback and
dispatcher convert them into result values before returning.
"""


class NatcmdError(Exception):
    """Base class for natcmd errors."""


class EffectorError(NatcmdError):
    """An effector could not perform its side effect."""


class CatalogLoadError(NatcmdError):
    """A command table source is unreadable or has the wrong shape."""


class ActionParseError(NatcmdError):
    """An action dict does not describe a known, well-formed ActionRequest."""
