"""Exceptions raised by the archive, export and spaceship helpers."""


class XcodeArchiveError(Exception):
    """Base class for every error this package raises."""


class CommandError(XcodeArchiveError):
    """An external command finished with a non-zero exit status or could not be started.

    ``exit_code`` is ``None`` when the executable could not be executed at all.
    ``output`` always holds whatever combined stdout/stderr was captured.
    """

    def __init__(self, printable_cmd, output='', exit_code=None):
        self.printable_cmd = printable_cmd
        self.output = output
        self.exit_code = exit_code
        if exit_code is None:
            message = f"executing command failed ({printable_cmd})"
        else:
            message = f"command failed with exit status {exit_code} ({printable_cmd})"
        super().__init__(message)


class XcodebuildCommandError(XcodeArchiveError):
    """A failed xcodebuild command with the reasons found in its log."""

    def __init__(self, message, reasons=None, output=''):
        self.reasons = list(reasons or [])
        self.output = output
        super().__init__(message)


class CacheCleanupError(XcodeArchiveError):
    """The invalid Swift package cache could not be removed."""


class ExportError(XcodeArchiveError):
    """The IPA export failed.

    ``distribution_logs_dir`` is the xcdistributionlogs directory xcodebuild
    reported in its output, or an empty string when none was found.
    """

    def __init__(self, message, output='', distribution_logs_dir=''):
        self.output = output
        self.distribution_logs_dir = distribution_logs_dir
        super().__init__(message)


class XcprettyInstallError(XcodeArchiveError):
    """xcpretty is missing and could not be installed."""


class InputError(XcodeArchiveError):
    """A step input is missing or invalid."""


class SpaceshipError(XcodeArchiveError):
    """Base class for failures of the spaceship Developer Portal client.

    ``output`` is the raw combined output of the failed attempt, used to
    detect transient service errors.
    """

    retryable = False

    def __init__(self, message, output=''):
        self.output = output
        super().__init__(message)


class SpaceshipCommandError(SpaceshipError):
    """The spaceship process exited with a non-zero status."""


class SpaceshipResponseError(SpaceshipError):
    """The spaceship output did not contain a single valid JSON response line."""


class DevPortalError(SpaceshipError):
    """The Developer Portal answered with an error."""


class ProfilesInconsistentError(SpaceshipError):
    """The Developer Portal asked for the request to be retried.

    Raised to the caller once every attempt came back with the retry flag set.
    """

    retryable = True

    def __init__(self, cause, output=''):
        self.cause = cause
        super().__init__(f"provisioning profiles are in an inconsistent state: {cause}", output)
