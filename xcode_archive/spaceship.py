"""Developer Portal access through the spaceship Ruby client.

The portal calls are made by a Ruby project (``main.rb``) run with
``bundle exec``. Its output mixes log lines with a single JSON response
line, which is the only part this module trusts.
"""
import base64
import json
import logging
import subprocess
import time

from xcode_archive.errors import (
    DevPortalError,
    ProfilesInconsistentError,
    SpaceshipCommandError,
    SpaceshipError,
    SpaceshipResponseError,
)
from xcode_archive.markers import (
    find_spaceship_responses,
    parse_spaceship_response,
    should_retry_spaceship_command,
)

logger = logging.getLogger('xcode-archive.spaceship')

SPACESHIP_MAX_ATTEMPTS = 3
SPACESHIP_RETRY_WAIT_SECONDS = 15


class AppleIDAuth:
    """Apple ID credentials for the Developer Portal."""

    def __init__(self, username, password, session=''):
        self.username = username
        self.password = password
        self.session = session

    def __repr__(self):
        return f"AppleIDAuth(username={self.username!r})"


class SpaceshipCommand:
    """A spaceship invocation; ``printable_cmd`` leaves the credentials out."""

    def __init__(self, args, cwd, printable_cmd):
        self.args = tuple(args)
        self.cwd = cwd
        self.printable_cmd = printable_cmd


def retry_wait_seconds(attempt):
    return attempt * SPACESHIP_RETRY_WAIT_SECONDS


class SpaceshipClient:
    """Runs spaceship subcommands in an already prepared Ruby project directory.

    ``sleep`` and ``runner`` default to ``time.sleep`` and ``subprocess.run``
    and can be swapped out in tests.
    """

    def __init__(self, work_dir, auth, team_id, sleep=time.sleep, runner=subprocess.run):
        self.work_dir = work_dir
        self.auth = auth
        self.team_id = team_id
        self._sleep = sleep
        self._runner = runner

    def create_spaceship_command(self, sub_command, *opts):
        auth_params = [
            '--username', self.auth.username,
            '--password', self.auth.password,
            '--session', base64.b64encode(self.auth.session.encode()).decode(),
            '--team-id', self.team_id,
        ]
        args = ['main.rb', '--subcommand', sub_command]
        args += list(opts)
        printable_cmd = ' '.join(args)
        args += auth_params

        return SpaceshipCommand(['bundle', 'exec', 'ruby'] + args, self.work_dir, printable_cmd)

    def run_spaceship_command(self, sub_command, *opts):
        """Run a subcommand and return its JSON response line.

        Attempts are made up to SPACESHIP_MAX_ATTEMPTS times, waiting
        ``attempt * 15`` seconds between them, when the portal asked for a
        retry or the service was temporarily unavailable. Any other failure
        is raised right away.
        """
        for attempt in range(1, SPACESHIP_MAX_ATTEMPTS + 1):
            cmd = self.create_spaceship_command(sub_command, *opts)
            logger.debug(f"$ {cmd.printable_cmd}")

            try:
                return self.run_spaceship_command_once(cmd)
            except SpaceshipError as e:
                if not (e.retryable or should_retry_spaceship_command(e.output)):
                    raise
                if attempt == SPACESHIP_MAX_ATTEMPTS:
                    raise
                logger.debug(e.output)
                logger.warning(f"spaceship command failed with a retryable error, retrying ({attempt}. attempt)...")

            self._sleep(retry_wait_seconds(attempt))

    def run_spaceship_command_once(self, cmd):
        try:
            result = self._runner(
                list(cmd.args),
                cwd=cmd.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors='replace',
            )
        except OSError as e:
            # the exception text is safe, but the argument list holds the password
            raise SpaceshipCommandError(f"spaceship command failed to start: {e.strerror}") from None

        output = (result.stdout or '').strip()
        if result.returncode != 0:
            raise SpaceshipCommandError(
                f"spaceship command exited with status {result.returncode}, output: {output}", output
            )

        matches = find_spaceship_responses(output)
        if not matches:
            raise SpaceshipResponseError(f"output does not contain response: {output}", output)
        if len(matches) > 1:
            raise SpaceshipResponseError(f"output contains {len(matches)} responses: {output}", output)
        match = matches[0]

        try:
            error, should_retry = parse_spaceship_response(match)
        except ValueError as e:
            raise SpaceshipResponseError(f"failed to unmarshal response: {e} ({match})", output) from e

        if should_retry:
            raise ProfilesInconsistentError(error, output)
        if error:
            raise DevPortalError(f"failed to query Developer Portal: {error}", output)

        return match

    def query(self, sub_command, *opts):
        """Run a subcommand and return the ``data`` member of its response."""
        response = json.loads(self.run_spaceship_command(sub_command, *opts))
        return response.get('data')
