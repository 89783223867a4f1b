"""Fatal errors raised by the B3 orchestration engine."""


class B3Error(Exception):
    """Base class for errors that abort an ask chain."""


class SessionError(B3Error):
    """The model service failed to create a session or answer a send."""

    def __init__(self, agent_name: str, cause: BaseException):
        self.agent_name = agent_name
        self.cause = cause
        super().__init__(f"model session for {agent_name!r} failed: {cause}")


class UnknownCapabilityError(B3Error):
    """The model asked for a capability that is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unknown function {name!r}")


class CallBudgetExceeded(B3Error):
    """Too many capability calls were chained in one top-level ask."""

    def __init__(self, max_calls: int):
        self.max_calls = max_calls
        super().__init__(f"call budget exceeded: more than {max_calls} capability calls")


class CapabilityStartError(B3Error):
    """A capability failed to start while building a registry."""

    def __init__(self, name: str, cause: BaseException):
        self.name = name
        self.cause = cause
        super().__init__(f"failed to start capability {name!r}: {cause}")
