"""
Standard exit codes and error taxonomy for plugindex.

Following Unix/POSIX conventions for command-line tools. The same error
classes are carried inside ``Result`` objects by the core components, so a
failure keeps its category from the transport layer up to the CLI.
"""
from typing import List, Optional

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
NO_PLUGINS_FOUND = 64    # No plugins matched the query
API_ERROR = 65           # Remote endpoint answered with a non-success status
CONFIG_ERROR = 66        # Configuration file error
PERMISSION_ERROR = 67    # Insufficient permissions
NETWORK_ERROR = 68       # Network connection failed or timed out
DATA_ERROR = 70          # Data format or validation error
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for common exceptions
EXCEPTION_EXIT_CODES = {
    'FileNotFoundError': GENERAL_ERROR,
    'FileExistsError': GENERAL_ERROR,
    'PermissionError': PERMISSION_ERROR,
    'ConnectionError': NETWORK_ERROR,
    'TimeoutError': NETWORK_ERROR,
    'ValueError': DATA_ERROR,
    'KeyError': DATA_ERROR,
    'JSONDecodeError': DATA_ERROR,
    'KeyboardInterrupt': INTERRUPTED,
}


def get_exit_code_for_exception(exc: BaseException) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, StoreError):
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


class StoreError(CommandError):
    """Base class for every failure the plugindex core reports."""

    #: Whether retrying the same operation may succeed.
    retryable = False

    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message, exit_code)


class ValidationError(StoreError):
    """Malformed local input. Never reaches the network."""
    def __init__(self, message: str):
        super().__init__(message, USAGE_ERROR)


class TransportError(StoreError):
    """Network unreachable, DNS failure or request timeout."""
    retryable = True

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message, NETWORK_ERROR)
        self.url = url


class ProtocolError(StoreError):
    """The remote answered with a non-success status code."""
    def __init__(self, message: str, status: int, body: str = "", url: Optional[str] = None):
        super().__init__(message, API_ERROR)
        self.status = status
        self.body = body
        self.url = url


class ParseError(StoreError):
    """A response body did not match the expected schema."""
    def __init__(self, message: str):
        super().__init__(message, DATA_ERROR)


class ConfigError(StoreError):
    """Raised when there's a configuration error."""
    def __init__(self, message: str, issues: Optional[List[str]] = None):
        super().__init__(message, CONFIG_ERROR)
        self.issues = issues or []


class NoPluginsFoundError(CommandError):
    """Raised when no plugins match the given criteria."""
    def __init__(self, message: str = "No plugins found"):
        super().__init__(message, NO_PLUGINS_FOUND)

