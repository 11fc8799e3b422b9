"""Custom exception hierarchy for smsi_calendar.

Specific exception types let callers tell a corrupt stored rule apart from a
configuration defect or a rejected write, instead of catching bare Exception.
"""


class CalendarCoreError(Exception):
    """Base exception for all smsi_calendar errors."""


class RecurrenceError(CalendarCoreError):
    """Base exception for recurrence encoding and decoding errors."""


class MalformedRuleError(RecurrenceError):
    """A stored recurrence rule string cannot be decoded.

    Raised when:
    - The rule has no FREQ part, or FREQ is not a known frequency token
    - INTERVAL or COUNT is not a positive integer
    - UNTIL is not a basic-format UTC timestamp or date
    - The rule carries a part this codec does not support

    Recovered by the occurrence expander, which degrades the event to its
    single nominal occurrence. Never surfaced as a query failure.
    """


class UnrecognizedCategoryError(RecurrenceError):
    """An unmapped recurrence category reached strict encoding.

    Raised when:
    - The category is not a RecurrenceCategory value
    - The category is recognized but has no frequency mapping (daily)

    Only raised when strict encoding is enabled. Signals a configuration
    defect at the boundary that introduced the category.
    """


class InvalidWindowError(CalendarCoreError):
    """A query window starts after it ends."""


class EventValidationError(CalendarCoreError):
    """An event write violates the event rules.

    Raised when:
    - The title is blank after trimming
    - A recurrence is requested for an event with no start date
    """


class EventNotFoundError(CalendarCoreError):
    """The event targeted by an update or delete does not exist."""
