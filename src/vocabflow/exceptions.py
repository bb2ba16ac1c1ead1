"""Exceptions raised by the learning scheduler."""


class VocabFlowError(Exception):
    """Base class for all application errors."""


class StoreError(VocabFlowError):
    """A store could not read or write its records."""


class SchemaMissingError(StoreError):
    """The backing tables or files have not been created yet."""


class SessionStateError(VocabFlowError):
    """A session action was requested in the wrong state."""

    def __init__(self, action: str, state: str):
        super().__init__(f"Cannot {action} while session is {state}")
        self.action = action
        self.state = state
