"""Domain errors raised by the bracket services. Routes map them to HTTP status codes."""


class BracketError(Exception):
    """Raised when a bracket operation's precondition is not met"""

    pass


class EventNotFoundError(BracketError):
    pass


class MatchNotFoundError(BracketError):
    pass


class ConcurrentUpdateError(Exception):
    """Raised when a match kept changing underneath a compare-and-swap write"""

    pass
