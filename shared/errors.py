from typing import Optional


class RegistrationError(Exception):
    """Base class for every failure surfaced by the registration store."""


class NotFound(RegistrationError):
    def __init__(self, registration_id=None, message: str = None):
        self.registration_id = registration_id
        super().__init__(message or f"Registration {registration_id} not found")


class StoreFailure(RegistrationError):
    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code
        super().__init__(message)


class WriteError(StoreFailure):
    pass


class ReadError(StoreFailure):
    pass


class ValidationError(RegistrationError):
    """Raised by submission collaborators; the store itself never validates."""


class MigrationError(RegistrationError):
    pass


class StoreNotFound(MigrationError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Store not found at {path}")


class BackupFailed(MigrationError):
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to back up {path}: {reason}")
