"""Plain text scanners for the markers xcodebuild and spaceship print.

These only look at strings, so the retry decisions built on them can be
tested without spawning anything.
"""
import json
import re

# xcodebuild prints this when the SourcePackages checkout cache is corrupted
SWIFT_PACKAGES_STATE_INVALID = 'Could not resolve package dependencies:'

SPACESHIP_SERVICE_UNAVAILABLE = '503 Service Temporarily Unavailable'

IDE_DISTRIBUTION_LOGS_PATTERN = re.compile(
    r"IDEDistribution: -\[IDEDistributionLogging _createLoggingBundleAtPath:\]: "
    r"Created bundle at path '(?P<log_path>.*)'"
)

SPACESHIP_RESPONSE_PATTERN = re.compile(r'^\{.*\}$', re.MULTILINE)


def scan_lines(output):
    """Split tool output on newlines only, dropping one trailing carriage return per line.

    Unlike ``str.splitlines`` a lone ``\\r`` (progress output) does not end a line.
    """
    return [line[:-1] if line.endswith('\r') else line for line in output.split('\n')]


def is_swift_packages_cache_invalid(output):
    return SWIFT_PACKAGES_STATE_INVALID in output


def find_ide_distribution_logs_path(output):
    """Return the xcdistributionlogs directory reported in the export output.

    Only the first reported path counts. An empty string means xcodebuild did
    not create a logging bundle.
    """
    for line in scan_lines(output):
        match = IDE_DISTRIBUTION_LOGS_PATTERN.search(line)
        if match:
            return match.group('log_path')
    return ''


def should_retry_spaceship_command(output):
    if not output:
        return False
    return SPACESHIP_SERVICE_UNAVAILABLE in output


def find_spaceship_responses(output):
    """Return every line of a spaceship run that looks like a JSON object."""
    return SPACESHIP_RESPONSE_PATTERN.findall(output)


def parse_spaceship_response(line):
    """Decode a response line into a ``(error, should_retry)`` pair.

    Raises ``ValueError`` when the line is not a JSON object, or when
    ``error`` is not a string or ``retry`` is not a boolean.
    """
    response = json.loads(line)
    if not isinstance(response, dict):
        raise ValueError(f"response is not an object: {line}")

    error = response.get('error')
    if error is None:
        error = ''
    elif not isinstance(error, str):
        raise ValueError(f"response error is not a string: {error!r}")

    should_retry = response.get('retry')
    if should_retry is None:
        should_retry = False
    elif not isinstance(should_retry, bool):
        raise ValueError(f"response retry is not a boolean: {should_retry!r}")

    return error, should_retry


def last_n_lines(text, n):
    lines = text.rstrip('\n').split('\n')
    return '\n'.join(lines[-n:])
