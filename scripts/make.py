import logging
import sys
import traceback

from xcode_archive import xcpretty
from xcode_archive.config import process_inputs, read_cli_arguments
from xcode_archive.errors import ExportError, XcodeArchiveError, XcodebuildCommandError, XcprettyInstallError
from xcode_archive.step import XcodeArchiveStep, export_xcodebuild_log

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger('xcode-archive')


def ensure_output_tool(config):
    """Fall back to plain xcodebuild output when xcpretty cannot be installed."""
    if config.output_tool != 'xcpretty':
        return
    try:
        xcpretty.ensure_installed()
    except XcprettyInstallError as e:
        logger.warning(str(e))
        logger.warning("Switching to xcodebuild for output tool")
        config.output_tool = 'xcodebuild'


def export_log(config, xcodebuild_log):
    try:
        export_xcodebuild_log(config.output_dir, xcodebuild_log)
    except OSError as e:
        logger.warning(f"Failed to export the raw xcodebuild log, error: {e}")


def main(argv=None):
    args = read_cli_arguments(argv)
    if args.verbose_log:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = process_inputs(args)
    except XcodeArchiveError as e:
        logger.error(f"Error: {e}")
        return 1

    logger.info(f"Archiving scheme {config.scheme} of {config.project_path}")

    try:
        ensure_output_tool(config)

        result = XcodeArchiveStep().run(config)
    except XcodebuildCommandError as e:
        logger.error(f"Archive failed, error: {e}")
        export_log(config, e.output)
        return 1
    except ExportError as e:
        logger.error(f"Error: {e}")
        if e.distribution_logs_dir:
            logger.error(f"xcdistributionlogs: {e.distribution_logs_dir}")
        export_log(config, e.output)
        return 1
    except XcodeArchiveError as e:
        logger.error(f"Error: {e}")
        logger.debug(f"Stack trace: {traceback.format_exc()}")
        return 1

    logger.info(f"Archive path: {result.archive_path}")
    logger.info(f"Export options path: {result.export_options_path}")
    logger.info(f"IPA export dir: {result.ipa_export_dir}")
    export_log(config, result.xcodebuild_log)
    return 0


if __name__ == '__main__':
    sys.exit(main())
