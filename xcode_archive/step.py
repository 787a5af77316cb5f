"""Archive then export: the two xcodebuild actions of the step, wired together."""
import logging
import os
import plistlib
import tempfile

from xcode_archive.archive import run_archive_command_with_retry
from xcode_archive.commands import new_archive_command, new_export_command
from xcode_archive.diagnostics import wrap_xcodebuild_command_error
from xcode_archive.errors import CommandError, XcodeArchiveError
from xcode_archive.export import run_export_command
from xcode_archive.markers import last_n_lines

logger = logging.getLogger('xcode-archive.step')

LAST_LINES_COUNT = 20
RAW_XCODEBUILD_LOG_NAME = 'raw-xcodebuild-output.log'

# A Gemfile next to the project makes export fail with
# "Error Domain=IDEDistributionErrorDomain Code=14 "No applicable devices found."" when these are set.
RUBY_ENVS_TO_UNSET = [
    'GEM_HOME',
    'GEM_PATH',
    'RUBYLIB',
    'RUBYOPT',
    'BUNDLE_BIN_PATH',
    '_ORIGINAL_GEM_PATH',
    'BUNDLE_GEMFILE',
]


class RunResult:
    def __init__(self):
        self.archive_path = ''
        self.export_options_path = ''
        self.ipa_export_dir = ''
        self.xcodebuild_log = ''


def log_last_lines(output, failed):
    message = "Last lines of the Xcode's build log:"
    if failed:
        logger.error(message)
    else:
        logger.info(message)
    logger.info(last_n_lines(output, LAST_LINES_COUNT))
    logger.warning("You can find the last couple of lines of Xcode's build log above, "
                   f"but the full log will be also available in the {RAW_XCODEBUILD_LOG_NAME}")


def generate_export_options(config):
    export_options = {
        'method': config.export_method,
        'uploadBitcode': config.upload_bitcode,
        'compileBitcode': config.compile_bitcode,
    }
    if config.team_id:
        export_options['teamID'] = config.team_id
    if config.icloud_container_environment:
        export_options['iCloudContainerEnvironment'] = config.icloud_container_environment
    return export_options


def write_export_options(config, path):
    """Write the custom export options, or generate them from the inputs."""
    if config.custom_export_options_plist_content:
        logger.info("Custom export options content provided, using it")
        with open(path, 'w') as f:
            f.write(config.custom_export_options_plist_content)
        return

    logger.info("No custom export options content provided, generating export options...")
    export_options = generate_export_options(config)
    with open(path, 'wb') as f:
        plistlib.dump(export_options, f)
    logger.info(f"Created export options plist at {path}: {export_options}")


def export_xcodebuild_log(output_dir, xcodebuild_log):
    """Write the raw xcodebuild log into the output dir and return its path.

    Nothing is written for an empty log; the path is then an empty string.
    """
    if not xcodebuild_log:
        return ''
    log_path = os.path.join(output_dir, RAW_XCODEBUILD_LOG_NAME)
    with open(log_path, 'w') as f:
        f.write(xcodebuild_log)
    logger.info(f"The raw xcodebuild log is now available at: {log_path}")
    return log_path


class XcodeArchiveStep:
    """Archives the project and exports an IPA from the archive."""

    def __init__(self, tmp_dir=None):
        self.tmp_dir = tmp_dir

    def _make_tmp_dir(self, prefix):
        return tempfile.mkdtemp(prefix=prefix, dir=self.tmp_dir)

    def xcode_archive(self, config, result):
        archive_dir = self._make_tmp_dir('xcodeArchive')
        archive_path = os.path.join(archive_dir, f"{config.artifact_name}.xcarchive")

        archive_cmd = new_archive_command(
            config.project_path,
            config.scheme,
            archive_path,
            configuration=config.configuration,
            destination=f"generic/platform={config.platform}",
            custom_options=config.xcodebuild_options,
            is_clean_build=config.is_clean_build,
            disable_index_while_building=config.disable_index_while_building,
            force_team_id=config.force_team_id,
            force_provisioning_profile_specifier=config.force_provisioning_profile_specifier,
            force_provisioning_profile=config.force_provisioning_profile,
            force_code_sign_identity=config.force_code_sign_identity,
        )

        use_xcpretty = config.output_tool == 'xcpretty'
        try:
            output = run_archive_command_with_retry(archive_cmd, use_xcpretty, config.swift_packages_path)
        except CommandError as e:
            result.xcodebuild_log = e.output
            log_last_lines(e.output, failed=True)
            raise wrap_xcodebuild_command_error(e) from e

        result.xcodebuild_log = output
        if not use_xcpretty:
            log_last_lines(output, failed=False)

        if not os.path.exists(archive_path):
            raise XcodeArchiveError(f"no archive generated at: {archive_path}")
        result.archive_path = archive_path
        logger.info(f"Archive created: {archive_path}")

    def xcode_ipa_export(self, config, result):
        for key in RUBY_ENVS_TO_UNSET:
            os.environ.pop(key, None)

        logger.info("Exporting ipa from the archive...")
        export_dir = self._make_tmp_dir('xcodeIPAExport')
        export_options_path = os.path.join(export_dir, 'export_options.plist')
        write_export_options(config, export_options_path)

        ipa_export_dir = os.path.join(export_dir, 'exported')
        export_cmd = new_export_command(result.archive_path, ipa_export_dir, export_options_path)
        output = run_export_command(export_cmd, config.output_tool == 'xcpretty')

        result.xcodebuild_log = output
        result.export_options_path = export_options_path
        result.ipa_export_dir = ipa_export_dir

    def run(self, config):
        """Archive and export. Returns a RunResult; failures are raised.

        XcodebuildCommandError and ExportError carry the raw xcodebuild output.
        """
        result = RunResult()
        self.xcode_archive(config, result)
        self.xcode_ipa_export(config, result)
        return result
