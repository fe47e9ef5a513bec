class ExamError(Exception):
    """Base class for exam session errors"""


class InvalidStateError(ExamError):
    """Operation called in a state that forbids it"""


class OutOfRangeError(ExamError):
    """Question number, section or task outside the session bounds"""


class EmptyCatalogError(ExamError):
    """Session constructed without any section"""


class CatalogNotFoundError(ExamError):
    """No catalog preset with the requested code"""


class SessionNotFoundError(ExamError):
    """No session registered under the requested ID"""
