class StudioError(Exception):
    """Base class for errors raised by Banana Studio."""


class ValidationError(StudioError):
    """User input was rejected before any remote call was made."""


class InvalidOperation(ValidationError):
    """An edit was submitted without an image or without a prompt."""


class IndexOutOfRange(StudioError, IndexError):
    """A history index outside the current entries was selected."""


class RemoteCallFailure(StudioError):
    """The generative-AI service failed. The cause is not distinguished."""


class WorkflowBusy(StudioError):
    """A request for this workflow is already in flight."""

    def __init__(self, workflow):
        super().__init__(f"A {workflow} request is already running.")
        self.workflow = workflow


class ImageReplaced(StudioError):
    """A new image was uploaded while an edit of the previous one was running."""
