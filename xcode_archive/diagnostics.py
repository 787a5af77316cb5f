"""Pull readable error reasons out of raw xcodebuild output."""
import re

from xcode_archive.errors import XcodebuildCommandError
from xcode_archive.markers import scan_lines

ERROR_LINE_PREFIX = 'error: '
NSERROR_LINE_PREFIX = 'Error '

DESCRIPTION_PATTERN = re.compile(r'NSLocalizedDescription=(.+?),|NSLocalizedDescription=(.+?)}')
SUGGESTION_PATTERN = re.compile(r'NSLocalizedRecoverySuggestion=(.+?),|NSLocalizedRecoverySuggestion=(.+?)}')


def find_first_sub_match(text, pattern):
    match = pattern.search(text)
    if not match:
        return ''
    for group in match.groups():
        if group:
            return group
    return ''


def is_nserror(line):
    # example: Error Domain=IDEProvisioningErrorDomain Code=9 ""ios-simple-objc.app" requires a provisioning profile."
    #   UserInfo={IDEDistributionIssueSeverity=3, NSLocalizedDescription="ios-simple-objc.app" requires a provisioning profile.,
    #   NSLocalizedRecoverySuggestion=Add a profile to the "provisioningProfiles" dictionary in your Export Options property list.}
    return (
        NSERROR_LINE_PREFIX in line
        and 'Domain=' in line
        and 'Code=' in line
        and 'UserInfo=' in line
    )


class NSError:
    """A Foundation error printed by xcodebuild, with its recovery suggestion."""

    def __init__(self, description, suggestion=''):
        self.description = description
        self.suggestion = suggestion

    @classmethod
    def parse(cls, line):
        """Return an NSError for the line, or None when it does not describe one."""
        if not is_nserror(line):
            return None

        description = find_first_sub_match(line, DESCRIPTION_PATTERN)
        if not description:
            return None

        suggestion = find_first_sub_match(line, SUGGESTION_PATTERN)
        return cls(description, suggestion)

    def __str__(self):
        if self.suggestion:
            return f"{self.description} {self.suggestion}"
        return self.description

    def __eq__(self, other):
        if not isinstance(other, NSError):
            return NotImplemented
        return (self.description, self.suggestion) == (other.description, other.suggestion)

    def __repr__(self):
        return f"NSError(description={self.description!r}, suggestion={self.suggestion!r})"


def find_xcodebuild_errors(output):
    """Return the error reasons found in an xcodebuild log.

    Lines starting with ``error: `` are collected as they are. NSError lines
    carry a recovery suggestion, so they replace the plain lines, but only
    when there is exactly one NSError for every plain error line.
    """
    error_lines = []
    nserrors = []

    for line in scan_lines(output):
        if line.startswith(ERROR_LINE_PREFIX):
            error_lines.append(line)
        elif line.startswith(NSERROR_LINE_PREFIX):
            nserror = NSError.parse(line)
            if nserror is not None:
                nserrors.append(nserror)

    if len(nserrors) == len(error_lines):
        return [str(nserror) for nserror in nserrors]

    return error_lines


def wrap_xcodebuild_command_error(error, output=None):
    """Turn a CommandError of an xcodebuild run into an XcodebuildCommandError.

    The message names the exit status and the reasons found in the log.
    """
    if output is None:
        output = error.output

    if error.exit_code is None:
        return XcodebuildCommandError(f"executing command failed ({error.printable_cmd})", output=output)

    reasons = find_xcodebuild_errors(output)
    message = f"command failed with exit status {error.exit_code} ({error.printable_cmd})"
    if reasons:
        message += ': ' + '\n'.join(reasons)
    return XcodebuildCommandError(message, reasons=reasons, output=output)
