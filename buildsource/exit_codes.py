"""
Standard exit codes and error types for buildsource commands.

Following Unix/POSIX conventions for command-line tools.
"""
from typing import Optional

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
CONFIG_ERROR = 66        # Configuration file error
PERMISSION_ERROR = 67    # Insufficient permissions
DATA_ERROR = 70          # Data format or validation error
INVALID_SOURCE = 72      # Source URI cannot be turned into a mirror
VCS_ERROR = 73           # Clone, fetch, checkout or other git failure
HISTORY_ERROR = 74       # Recipe repository cannot be opened or walked
NO_HISTORY = 75          # No tag produced a usable manifest
SERIALIZATION_ERROR = 76 # history.xml could not be rendered or written
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for common exceptions
EXCEPTION_EXIT_CODES = {
    'FileNotFoundError': GENERAL_ERROR,
    'PermissionError': PERMISSION_ERROR,
    'ValueError': DATA_ERROR,
    'KeyError': DATA_ERROR,
    'JSONDecodeError': DATA_ERROR,
    'ManifestError': DATA_ERROR,
    'KeyboardInterrupt': INTERRUPTED,
}


def get_exit_code_for_exception(exc: Exception) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, CommandError):
        return exc.exit_code
    exc_name = exc.__class__.__name__
    return EXCEPTION_EXIT_CODES.get(exc_name, GENERAL_ERROR)


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class ConfigError(CommandError):
    """Raised when there's a configuration error."""
    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)


class InvalidSourceError(CommandError):
    """Raised when a source URI is malformed."""
    def __init__(self, message: str):
        super().__init__(message, INVALID_SOURCE)


class VcsError(CommandError):
    """Raised when preparing a git mirror fails."""
    def __init__(self, message: str):
        super().__init__(message, VCS_ERROR)


class HistoryOpenError(CommandError):
    """Raised when a recipe repository cannot be opened or its tags read."""
    def __init__(self, message: str):
        super().__init__(message, HISTORY_ERROR)


class NoUsableHistoryError(CommandError):
    """Raised when no tag of the recipe repository yields a usable manifest."""
    def __init__(self, message: str = "No usable git history found"):
        super().__init__(message, NO_HISTORY)


class SerializationError(CommandError):
    """Raised when the changelog cannot be rendered or written."""
    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, SERIALIZATION_ERROR)
        self.path = path
