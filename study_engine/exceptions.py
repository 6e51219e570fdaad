"""
Custom exceptions for the study engine.
"""


class StudyEngineError(Exception):
    """Base exception for all study engine errors."""
    pass


class ConfigurationError(StudyEngineError):
    """Raised when settings are missing or out of range."""
    pass


class ValidationError(StudyEngineError):
    """Raised when a caller passes a malformed argument (rating, card type, retention)."""
    pass


class CardNotFoundError(StudyEngineError):
    """Raised when an operation other than review references an unknown card."""

    def __init__(self, card_id: str):
        super().__init__(f"Card not found: {card_id}")
        self.card_id = card_id


class StorageError(StudyEngineError):
    """Raised when a storage write fails; the transaction has been rolled back."""
    pass


class MigrationError(StudyEngineError):
    """Raised when the schema cannot be brought to a known version."""
    pass


class EngineNotReadyError(StudyEngineError):
    """Raised when a command arrives before startup migrations succeeded."""
    pass
