"""Run ``xcodebuild -exportArchive`` and locate the distribution logs when it fails."""
import logging
import os

from xcode_archive.errors import CommandError, ExportError
from xcode_archive.markers import find_ide_distribution_logs_path
from xcode_archive.xcpretty import XcprettyCommand

logger = logging.getLogger('xcode-archive.export')

CRITICAL_LOG_NAME = 'IDEDistribution.critical.log'


def read_critical_log(distribution_logs_dir):
    """Return the IDEDistribution critical log, or None when it cannot be read."""
    path = os.path.join(distribution_logs_dir, CRITICAL_LOG_NAME)
    try:
        with open(path, 'r', errors='replace') as f:
            return f.read()
    except OSError as e:
        logger.debug(f"Could not read {path}: {e}")
        return None


def run_export_command(export_cmd, use_xcpretty):
    """Export the archive and return the command output.

    On failure raises ExportError with the raw output and the
    xcdistributionlogs directory xcodebuild created, if it reported one.
    """
    cmd = XcprettyCommand(export_cmd) if use_xcpretty else export_cmd
    logger.info(f"$ {cmd.printable_cmd()}")

    try:
        return cmd.run()
    except CommandError as e:
        output = e.output
        error = e

    if use_xcpretty:
        logger.warning("If you can't find the reason of the error in the log, please check the raw-xcodebuild-output.log")

    distribution_logs_dir = find_ide_distribution_logs_path(output)
    if not distribution_logs_dir:
        logger.warning("Failed to find xcdistributionlogs")
    else:
        logger.warning(f"{CRITICAL_LOG_NAME}:")
        critical_log = read_critical_log(distribution_logs_dir)
        if critical_log is not None:
            logger.info(critical_log)
        logger.warning(f"Also please check the xcdistributionlogs at: {distribution_logs_dir}")

    raise ExportError(
        f"export failed, error: {error}", output=output, distribution_logs_dir=distribution_logs_dir
    ) from error
