"""Domain error types. Mapped to HTTP status codes in main.py."""


class DomainError(Exception):
    """Base domain error."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ScenarioNotFound(DomainError):
    """Requested scenario id has no catalog entry."""

    def __init__(self, scenario_id: str):
        self.scenario_id = scenario_id
        super().__init__(f"Scenario {scenario_id!r} not found")


class PatientNotFound(DomainError):
    def __init__(self, patient_id: str):
        self.patient_id = patient_id
        super().__init__(f"Patient {patient_id!r} not found")


class PlaythroughNotFound(DomainError):
    def __init__(self, playthrough_id: str):
        self.playthrough_id = playthrough_id
        super().__init__(f"Play-through {playthrough_id!r} not found")


class InvalidTransition(DomainError):
    """Player operation not allowed in the current state."""


class InvalidSelection(DomainError):
    """Answer does not exist on the current segment (unknown label, bad index)."""


class MalformedScenarioData(DomainError):
    """Scenario data that cannot be degraded into something playable."""

    def __init__(self, message: str, anomalies: list[str] | None = None):
        self.anomalies = anomalies or []
        super().__init__(message)


class CatalogUnavailable(DomainError):
    """Scenario catalog source could not be read."""


class PersistenceFailure(DomainError):
    """Progress write failed. Reported as a notice, never blocks the player."""


class NotAuthorized(DomainError):
    def __init__(self, message: str = "Not authorized"):
        super().__init__(message)
