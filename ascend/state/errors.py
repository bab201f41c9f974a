"""
Error taxonomy for quest and ledger operations.

Domain violations subclass ValueError so callers can catch them the same
way as the manager's validation errors. A rejected report is not an error;
it comes back as an unverified score.
"""


class GameError(ValueError):
    """Base class for rule violations raised by game systems."""
    pass


class InputRequiredError(GameError):
    """Empty or whitespace-only text where content is required."""
    def __init__(self, what: str = "Input"):
        self.what = what
        super().__init__(f"{what} cannot be empty")


class QuestNotFoundError(GameError):
    """No quest with the given ID."""
    def __init__(self, quest_id: str):
        self.quest_id = quest_id
        super().__init__(f"Quest not found: {quest_id}")


class ReportNotFoundError(GameError):
    """No report with the given ID."""
    def __init__(self, report_id: str):
        self.report_id = report_id
        super().__init__(f"Report not found: {report_id}")


class InvalidTransitionError(GameError):
    """Lifecycle transition attempted from the wrong status."""
    def __init__(self, current: str, attempted: str):
        self.current = current
        self.attempted = attempted
        super().__init__(f"Cannot {attempted} while {current}.")


class InsufficientResourceError(GameError):
    """Spend larger than the available balance."""
    def __init__(self, resource: str, needed: int, available: int):
        self.resource = resource
        self.needed = needed
        self.available = available
        super().__init__(
            f"Not enough {resource}: need {needed}, have {available}"
        )


class PersistenceError(Exception):
    """Backing store could not read or write a record."""
    pass
