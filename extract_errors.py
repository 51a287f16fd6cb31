"""Exceptions raised by the extraction pipeline."""


class ExtractError(Exception):
    """Base class for fatal extraction errors"""


class DocDecodeError(ExtractError, ValueError):
    """A documentation table contains a value the importer cannot decode."""


class DeviceBuildError(ExtractError):
    """A device model object is missing a required field."""
