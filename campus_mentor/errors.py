# campus_mentor/errors.py
"""Error taxonomy shared by the services and the HTTP layer.

Every error carries the HTTP status it maps to and a user-facing message.
The message is what the student sees, so it never contains internal detail.
"""

GENERIC_FAILURE_MESSAGE = (
    "Désolé, une erreur technique est survenue. Réessaie dans quelques instants."
)


class MentorError(Exception):
    """Base class for errors surfaced to the chat caller"""

    status_code = 500
    public_message = GENERIC_FAILURE_MESSAGE

    def __init__(self, detail: str = "", public_message: str = None):
        super().__init__(detail or self.public_message)
        self.detail = detail
        if public_message is not None:
            self.public_message = public_message


class BadRequest(MentorError):
    status_code = 400
    public_message = "email et message sont requis."


class ConfigurationError(MentorError):
    status_code = 500
    public_message = (
        "Désolé, le mentor n'est pas correctement configuré pour le moment. "
        "L'équipe a été prévenue."
    )


class TemplateError(ConfigurationError):
    """A template references placeholders that were not supplied"""

    def __init__(self, missing):
        self.missing = sorted(set(missing))
        super().__init__(f"unresolved placeholders: {', '.join(self.missing)}")


class RateLimited(MentorError):
    status_code = 503
    public_message = (
        "Le mentor est très sollicité en ce moment. Réessaie dans quelques instants."
    )


class UpstreamFailure(MentorError):
    status_code = 500


class StorageUnavailable(MentorError):
    status_code = 500
