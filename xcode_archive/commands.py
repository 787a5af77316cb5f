"""xcodebuild command lines for the archive and export actions."""
import logging
import shlex
import subprocess

from xcode_archive.errors import CommandError

logger = logging.getLogger('xcode-archive.commands')

XCODEBUILD = 'xcodebuild'


class XcodebuildCommand:
    """A single xcodebuild invocation.

    The argument list is fixed at construction; ``run`` can be called again
    to re-run the very same command.
    """

    def __init__(self, args, cwd=None):
        self.args = tuple(args)
        self.cwd = cwd

    def printable_cmd(self):
        return shlex.join(self.args)

    def run(self):
        """Run the command and return its combined stdout/stderr.

        Raises CommandError, with the captured output attached, when the
        command exits with a non-zero status or cannot be started.
        """
        try:
            result = subprocess.run(
                list(self.args),
                cwd=self.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                # file names and tool dumps are not always valid UTF-8
                errors='replace',
            )
        except OSError as e:
            raise CommandError(self.printable_cmd(), output=str(e)) from e

        logger.debug(f"{self.args[0]} exited with status {result.returncode}")
        if result.returncode != 0:
            raise CommandError(self.printable_cmd(), output=result.stdout, exit_code=result.returncode)
        return result.stdout

    def __repr__(self):
        return f"XcodebuildCommand({self.printable_cmd()!r})"


def new_archive_command(project_path, scheme, archive_path, configuration='', destination='',
                        custom_options=None, is_clean_build=False, disable_index_while_building=False,
                        force_team_id='', force_provisioning_profile_specifier='',
                        force_provisioning_profile='', force_code_sign_identity=''):
    """Build the ``xcodebuild archive`` command for a project or workspace."""
    if project_path.endswith('.xcworkspace'):
        args = [XCODEBUILD, '-workspace', project_path]
    else:
        args = [XCODEBUILD, '-project', project_path]

    args += ['-scheme', scheme]
    if configuration:
        args += ['-configuration', configuration]

    if is_clean_build:
        args.append('clean')
    args += ['archive', '-archivePath', archive_path]

    options = list(custom_options or [])
    # user supplied -destination wins over the generic platform one
    if destination and '-destination' not in options:
        args += ['-destination', destination]
    args += options

    if disable_index_while_building:
        args.append('COMPILER_INDEX_STORE_ENABLE=NO')
    if force_team_id:
        args.append(f"DEVELOPMENT_TEAM={force_team_id}")
    if force_provisioning_profile_specifier:
        args.append(f"PROVISIONING_PROFILE_SPECIFIER={force_provisioning_profile_specifier}")
    elif force_provisioning_profile:
        args.append(f"PROVISIONING_PROFILE={force_provisioning_profile}")
    if force_code_sign_identity:
        args.append(f"CODE_SIGN_IDENTITY={force_code_sign_identity}")

    return XcodebuildCommand(args)


def new_export_command(archive_path, export_dir, export_options_path):
    """Build the ``xcodebuild -exportArchive`` command."""
    return XcodebuildCommand([
        XCODEBUILD, '-exportArchive',
        '-archivePath', archive_path,
        '-exportPath', export_dir,
        '-exportOptionsPlist', export_options_path,
    ])


def split_xcodebuild_options(options):
    """Split the free-form additional xcodebuild options the way a shell would."""
    if not options:
        return []
    try:
        return shlex.split(options)
    except ValueError as e:
        raise ValueError(f"failed to shell split xcodebuild options ({options}): {e}") from e
