"""
Exception classes for Playlist-Fixer

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message for the console and an
optional details dictionary for the log file.

Exception Hierarchy:
    PlaylistFixerError (base)
        ConfigurationError - Missing credentials or invalid settings
        AuthorizationError - Login handshake failures (all fatal)
            EntropyUnavailable
            AuthorizationStateMismatch
            TokenExchangeFailed
            ListenerBindError
            LoginTimeout
        SelectionError - Playlist selection problems (all fatal)
            EmptySelection
            InvalidSelectionToken
            SelectionOutOfRange
            SelectionInputError
        SpotifyAPIError - Spotify Web API failures
            PlaylistFetchError - Recoverable, skips one playlist
            PlaylistCreateError - Recoverable, skips one playlist
"""

from typing import Any, Dict, Optional


class PlaylistFixerError(Exception):
    """
    Base exception for all Playlist-Fixer errors

    All custom exceptions inherit from this class so the CLI can catch
    every application error with a single except clause.

    Attributes:
        message: Human-readable error description shown to the user
        details: Additional context for logging (playlist IDs, status codes)
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ConfigurationError(PlaylistFixerError):
    """
    Raised when the settings cannot be used to run

    Common causes:
        - SPOTIFY_ID / SPOTIFY_SECRET not set
        - redirect_url is not an http URL with a port and a path
        - negative pacing delay or out-of-range page size
    """
    pass


class AuthorizationError(PlaylistFixerError):
    """Base class for failures of the browser login handshake. Always fatal."""
    pass


class EntropyUnavailable(AuthorizationError):
    """The operating system could not supply random bytes for the state token."""
    pass


class AuthorizationStateMismatch(AuthorizationError):
    """
    The callback's state parameter does not match the locally generated token

    The login attempt cannot be trusted (possible CSRF), so the run stops.
    """
    pass


class TokenExchangeFailed(AuthorizationError):
    """
    The authorization code could not be turned into an access token

    Common causes:
        - User denied consent (callback carries an error parameter)
        - Expired or already used authorization code
        - Network failure talking to the accounts service
    """
    pass


class ListenerBindError(AuthorizationError):
    """The local callback listener could not bind its port."""
    pass


class LoginTimeout(AuthorizationError):
    """No callback arrived within the configured login timeout."""
    pass


class SelectionError(PlaylistFixerError):
    """Base class for playlist selection failures. No playlist is processed."""
    pass


class EmptySelection(SelectionError):
    """The user entered nothing."""
    pass


class InvalidSelectionToken(SelectionError):
    """
    A comma separated token is not a number

    Attributes:
        token: The offending token, stripped of whitespace
    """

    def __init__(self, token: str) -> None:
        super().__init__(f"Invalid number: {token}", details={'token': token})
        self.token = token


class SelectionOutOfRange(SelectionError):
    """
    A selected number is outside the displayed 1..total range

    Attributes:
        value: The 1-based number the user typed
        total: Number of playlists that were listed
    """

    def __init__(self, value: int, total: int) -> None:
        super().__init__(
            f"Number out of range: {value} (choose 1-{total})",
            details={'value': value, 'total': total}
        )
        self.value = value
        self.total = total


class SelectionInputError(SelectionError):
    """The selection could not be read from the console (EOF or abort)."""
    pass


class SpotifyAPIError(PlaylistFixerError):
    """
    Raised when a Spotify Web API call fails

    Attributes:
        http_status: HTTP status returned by Spotify, None for network errors
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        http_status: Optional[int] = None
    ) -> None:
        super().__init__(message, details)
        self.http_status = http_status


class PlaylistFetchError(SpotifyAPIError):
    """Listing the items of one playlist failed. That playlist is skipped."""
    pass


class PlaylistCreateError(SpotifyAPIError):
    """Creating the reversed copy failed. No tracks are appended for it."""
    pass
