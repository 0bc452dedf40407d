"""Exceptions raised by mathfunc_checker."""


class MathCheckError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(MathCheckError):
    """A checker option has an unusable value."""


class DumpFileError(MathCheckError):
    """The Cppcheck dump file is missing or cannot be read."""
