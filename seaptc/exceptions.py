"""
seaptc/exceptions.py
Exceptions raised by the conference data core.

Provides typed exceptions for:
- Blob decoding and blob registry failures (fatal to a snapshot refresh)
- Login code assignment
- Configuration validation

Datastore and transaction failures are not wrapped: the SQLAlchemy error is
propagated to the caller unchanged.
"""


class SeaptcException(Exception):
    """Base exception for the conference core"""
    status_code: int = 500

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)


class BlobDecodeError(SeaptcException):
    """
    Raised when a stored blob cannot be decoded or applied.

    The snapshot cache does not publish a partial snapshot when this is raised.
    """
    status_code = 500

    def __init__(self, name: str, reason: str = ""):
        self.name = name
        message = f"store.{name}: cannot decode blob"
        if reason:
            message += f": {reason}"
        super().__init__(message, self.status_code)


class UnknownBlobError(SeaptcException):
    """
    Raised when a blob name is not in the codec registry.

    Unknown data is never ignored during a refresh.
    """
    status_code = 500

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"store: unknown blob name {name!r}", self.status_code)


class LoginCodeExhaustedError(SeaptcException):
    """Raised when no unused login code was found within the retry limit."""
    status_code = 503

    def __init__(self, participant_id: str = ""):
        self.participant_id = participant_id
        super().__init__("could not assign login code", self.status_code)


class ConfigurationInvalidError(SeaptcException):
    """
    Raised when the conference configuration cannot be used.

    Examples:
    - CookieKey not set
    - Conference date does not exist
    - Emulator requested without an emulator host
    - Unknown keys with strict decoding enabled
    """
    status_code = 400

    def __init__(self, message: str = "Invalid configuration"):
        super().__init__(message, self.status_code)


class InvalidInputError(SeaptcException):
    """
    Raised when a submitted form has invalid fields.

    Nothing is written when this is raised; `fields` names the inputs to
    redisplay as invalid.
    """
    status_code = 400

    def __init__(self, fields, message: str = "Invalid input"):
        self.fields = sorted(fields)
        super().__init__(message, self.status_code)
