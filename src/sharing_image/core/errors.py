"""Error taxonomy shared by the compositor, the stores and the HTTP layer."""


class SharingImageError(Exception):
    """Base class for all service errors."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SharingImageError):
    """Template or fieldset failed a required-field or reference check."""

    status_code = 400


class NotFoundError(SharingImageError):
    """Referenced template or attachment does not exist."""

    status_code = 404


class RenderError(SharingImageError):
    """The canvas backend failed while drawing or encoding."""

    status_code = 500
