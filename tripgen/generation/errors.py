"""Exceptions raised by the generation pipeline."""


class GenerationError(Exception):
    """Base class for generation failures."""

    pass


class ResumeError(GenerationError):
    """
    Raised when the provider refuses to re-attach to a stored response.

    The client's saved resume state is stale when this happens and should
    be discarded.
    """

    pass


class RecordPersistenceError(GenerationError):
    """Raised when the terminal outcome could not be written to the record store."""

    def __init__(self, generation_id: str, message: str):
        super().__init__(f"Failed to persist outcome for generation {generation_id}: {message}")
        self.generation_id = generation_id
