"""
Precondition failures raised by the engines.

Every error aborts the whole operation: the enclosing transaction is rolled
back before the exception reaches the caller. status_code is the HTTP status
the API surfaces for the error.
"""

from typing import Optional


class ChainError(Exception):
    """Base class for all rejected operations."""

    status_code = 409

    def __init__(self, message: str, character_id: Optional[int] = None):
        super().__init__(message)
        self.character_id = character_id

    @property
    def code(self) -> str:
        return type(self).__name__


class AlreadyInitialized(ChainError):
    """The character slot has already been written."""


class NotInitialized(ChainError):
    """The character slot has not been initialized yet."""
    status_code = 404


class AlreadyEntangled(ChainError):
    """The two characters are already bonded."""


class SelfEntanglement(ChainError):
    """A character cannot bond with itself."""
    status_code = 422


class AlreadyCollapsed(ChainError):
    """The quantum state has already collapsed."""


class InvalidEntanglementFactor(ChainError):
    """Entanglement factor must be positive; zero is the unset marker."""
    status_code = 422


class InvalidMutationRate(ChainError):
    """Mutation rate is a percentage in [0, 100]."""
    status_code = 422


class InvalidAwarenessLevel(ChainError):
    """Awareness must lie in (0, 100]."""
    status_code = 422


class InvalidPriority(ChainError):
    """Priority must lie in [0, 100]."""
    status_code = 422


class CooldownNotElapsed(ChainError):
    """Evolution attempted before the cooldown window elapsed."""
    status_code = 429


class SeedExhausted(ChainError):
    """A scripted seed source ran out of values."""
    status_code = 500


MAX_CHARACTER_ID = 2 ** 256 - 1


class InvalidCharacterId(ChainError):
    """Character IDs are unsigned 256-bit integers."""
    status_code = 422


def check_character_id(*character_ids: int) -> None:
    """Reject IDs outside 0..MAX_CHARACTER_ID."""
    for character_id in character_ids:
        if not 0 <= character_id <= MAX_CHARACTER_ID:
            raise InvalidCharacterId(
                f"Character ID must be within 0..2**256-1, got {character_id}",
                character_id,
            )
