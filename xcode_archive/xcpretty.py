"""Run xcodebuild commands through xcpretty and keep xcpretty installed."""
import logging
import shutil
import subprocess

from xcode_archive.errors import CommandError, XcprettyInstallError

logger = logging.getLogger('xcode-archive.xcpretty')

XCPRETTY = 'xcpretty'


class XcprettyCommand:
    """Pipes a command's output into xcpretty.

    ``run`` returns the raw output of the wrapped command, not the
    prettified one, so callers can still scan it for errors. A failure of
    either process raises CommandError.
    """

    def __init__(self, command):
        self.command = command

    def printable_cmd(self):
        return f"set -o pipefail && {self.command.printable_cmd()} | {XCPRETTY}"

    def run(self):
        printable_cmd = self.printable_cmd()
        try:
            build = subprocess.Popen(
                list(self.command.args),
                cwd=self.command.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors='replace',
            )
        except OSError as e:
            raise CommandError(printable_cmd, output=str(e)) from e

        try:
            pretty = subprocess.Popen([XCPRETTY], stdin=subprocess.PIPE, text=True, errors='replace')
        except OSError as e:
            build.kill()
            build.wait()
            raise CommandError(printable_cmd, output=str(e)) from e

        output = []
        try:
            with build.stdout:
                for line in build.stdout:
                    output.append(line)
                    try:
                        pretty.stdin.write(line)
                    except BrokenPipeError:
                        # keep collecting the raw log even when xcpretty died
                        pass
        finally:
            try:
                pretty.stdin.close()
            except BrokenPipeError:
                pass
            build_status = build.wait()
            pretty_status = pretty.wait()

        raw_output = ''.join(output)

        if build_status != 0:
            raise CommandError(printable_cmd, output=raw_output, exit_code=build_status)
        if pretty_status != 0:
            raise CommandError(printable_cmd, output=raw_output, exit_code=pretty_status)
        return raw_output


def is_installed():
    return shutil.which(XCPRETTY) is not None


def install_commands():
    return [['gem', 'install', XCPRETTY, '--no-document']]


def install():
    """Install xcpretty with RubyGems."""
    for cmd in install_commands():
        logger.info(f"$ {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, errors='replace')
        except OSError as e:
            raise XcprettyInstallError(f"{' '.join(cmd)} failed: {e}") from e
        if result.returncode != 0:
            raise XcprettyInstallError(f"{' '.join(cmd)} failed: {result.stdout}{result.stderr}")


def version():
    try:
        result = subprocess.run([XCPRETTY, '--version'], capture_output=True, text=True, errors='replace')
    except OSError as e:
        raise XcprettyInstallError(f"failed to determine xcpretty version: {e}") from e
    if result.returncode != 0:
        raise XcprettyInstallError(f"failed to determine xcpretty version: {result.stderr}")
    return result.stdout.strip()


def ensure_installed():
    """Make sure xcpretty can be used, installing it when needed.

    Returns the installed version. Raises XcprettyInstallError when it is
    missing and cannot be installed.
    """
    logger.info("Checking if output tool (xcpretty) is installed")
    if not is_installed():
        logger.warning("xcpretty is not installed")
        logger.info("Installing xcpretty")
        install()

    xcpretty_version = version()
    logger.info(f"- xcpretty version: {xcpretty_version}")
    return xcpretty_version
