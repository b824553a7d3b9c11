"""Exception taxonomy for Pin Radio."""


class PinRadioError(Exception):
    """Base exception for all Pin Radio errors."""

    pass


class ConfigurationError(PinRadioError):
    """Raised for bad paths, malformed genre tables or invalid settings."""

    pass


class UnknownTrackError(ConfigurationError):
    """Raised when a track has not been analysed into the library."""

    def __init__(self, path: str, message: str = None):
        self.path = path
        super().__init__(message or f"Track not found in analysed library: {path}")


class PlayerError(PinRadioError):
    """Base exception for player command failures."""

    def __init__(self, message: str, command: str = None):
        self.command = command
        if command:
            message = f"{message} (while running '{command}')"
        super().__init__(message)


class PlayerCommandError(PlayerError):
    """Raised when the player rejects a single command."""

    def __init__(self, message: str, command: str = None, code: int = None):
        self.code = code
        super().__init__(message, command)


class PlayerConnectionError(PlayerError):
    """Raised when the connection to the player is lost or refused."""

    pass


class PlayerProtocolError(PlayerError):
    """Raised when the player state is missing fields we rely on."""

    pass


class LibraryExhaustedError(PinRadioError):
    """Raised when the candidate sequence runs dry."""

    def __init__(self, pin: str = None):
        self.pin = pin
        message = "No more candidates to queue"
        if pin:
            message += f" for pin {pin}"
        super().__init__(message)
