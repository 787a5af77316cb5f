"""Run ``xcodebuild archive``, recovering once from a corrupted Swift package cache."""
import logging
import shutil

from xcode_archive.errors import CacheCleanupError, CommandError
from xcode_archive.markers import is_swift_packages_cache_invalid
from xcode_archive.xcpretty import XcprettyCommand

logger = logging.getLogger('xcode-archive.archive')


def run_archive_command(archive_cmd, use_xcpretty):
    """Run the archive command once and return its output.

    Raises CommandError with the captured output when the build fails.
    """
    cmd = XcprettyCommand(archive_cmd) if use_xcpretty else archive_cmd
    logger.info(f"$ {cmd.printable_cmd()}")
    return cmd.run()


def run_archive_command_with_retry(archive_cmd, use_xcpretty, swift_packages_path, remove_tree=shutil.rmtree):
    """Run the archive command, retrying once after clearing an invalid Swift package cache.

    The cache is only cleared when the build failed, ``swift_packages_path``
    is set and the output shows the cache-invalid marker. The second run is
    final: whatever it produces is returned or raised as is.
    """
    try:
        return run_archive_command(archive_cmd, use_xcpretty)
    except CommandError as e:
        if not swift_packages_path or not is_swift_packages_cache_invalid(e.output):
            raise
        logger.warning(f"Archive failed, swift packages cache is in an invalid state, error: {e}")

    try:
        remove_tree(swift_packages_path)
    except FileNotFoundError:
        logger.debug(f"Swift packages cache already missing: {swift_packages_path}")
    except OSError as e:
        raise CacheCleanupError(f"failed to remove invalid Swift package caches, error: {e}") from e

    logger.info(f"Removed Swift packages cache: {swift_packages_path}, retrying archive")
    return run_archive_command(archive_cmd, use_xcpretty)
