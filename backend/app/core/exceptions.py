class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class SchedulerError(AppError):
    """Raised when the scheduler encounters a logical error or invalid state."""
    def __init__(self, message: str, details: dict = None, status_code: int = 400):
        super().__init__(message, status_code=status_code, details=details)

class MissingPrerequisiteError(SchedulerError):
    """Raised before any mutation when a generation input category is empty."""
    def __init__(self, prerequisite: str, message: str, hint: str):
        super().__init__(message, details={"prerequisite": prerequisite, "hint": hint})
        self.prerequisite = prerequisite

class GenerationInProgressError(SchedulerError):
    """Raised when another generation run already owns the term."""
    def __init__(self, academic_term_id: str):
        super().__init__(
            f"Schedule generation is already running for academic term {academic_term_id}",
            details={"academic_term_id": academic_term_id},
            status_code=409,
        )

class ExistingScheduleError(SchedulerError):
    """Raised when generation would have to overwrite entries but clearing was disabled."""
    def __init__(self, academic_term_id: str, existing: int):
        super().__init__(
            "Teaching schedules already exist for this term; enable clear_existing to regenerate",
            details={"academic_term_id": academic_term_id, "existing_entries": existing},
            status_code=409,
        )

class SchedulePersistenceError(AppError):
    """Raised when the delete+insert of a generated schedule fails; the transaction is rolled back."""
    def __init__(self, message: str, step: str):
        super().__init__(message, status_code=500, details={"step": step})
        self.step = step

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)

class ConfigurationError(AppError):
    """Raised when system configuration is invalid."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)
