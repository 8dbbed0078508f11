# dh_importer/exceptions.py


class StatblockParseError(Exception):
    """Base class for statblock parsing failures."""


class EmptyInputError(StatblockParseError):
    """Input was missing, not a string, or had no non-blank lines."""

    def __init__(self, message: str = "Statblock text is empty"):
        super().__init__(message)


class MissingNameError(StatblockParseError):
    """A full pass over the statblock never found a name line."""

    def __init__(self, message: str = "Could not find a name in the statblock"):
        super().__init__(message)
