"""Step inputs: command line arguments, the optional properties file and their validation."""
import argparse
import configparser
import logging
import os
import plistlib
from xml.parsers.expat import ExpatError

from xcode_archive.commands import split_xcodebuild_options
from xcode_archive.errors import InputError

logger = logging.getLogger('xcode-archive.config')

OUTPUT_TOOLS = ['xcpretty', 'xcodebuild']
EXPORT_METHODS = ['app-store', 'ad-hoc', 'enterprise', 'development']
PLATFORMS = ['iOS', 'tvOS', 'watchOS', 'visionOS']

# conffile keys that are read as yes/no flags
BOOLEAN_KEYS = [
    'upload_bitcode',
    'compile_bitcode',
    'is_clean_build',
    'disable_index_while_building',
    'verbose_log',
]

STRING_KEYS = [
    'project_path',
    'scheme',
    'configuration',
    'output_dir',
    'output_tool',
    'export_method',
    'team_id',
    'icloud_container_environment',
    'custom_export_options_plist_content',
    'force_team_id',
    'force_provisioning_profile_specifier',
    'force_provisioning_profile',
    'force_code_sign_identity',
    'xcodebuild_options',
    'artifact_name',
    'platform',
    'swift_packages_path',
]


def build_parser():
    parser = argparse.ArgumentParser(description='Archive an Xcode project and export the IPA')

    parser.add_argument('--project-path', help='Path to the .xcodeproj or .xcworkspace')
    parser.add_argument('--scheme', help='Scheme to archive')
    parser.add_argument('--configuration', default='', help='Build configuration (defaults to the scheme archive action)')
    parser.add_argument('--output-dir', default='./output', help='Directory for the generated artifacts')
    parser.add_argument('--output-tool', choices=OUTPUT_TOOLS, default='xcpretty',
                        help='Log formatter for the xcodebuild output')
    parser.add_argument('--platform', choices=PLATFORMS, default='iOS',
                        help='Platform used for the generic archive destination')
    parser.add_argument('--artifact-name', default='', help='Base name of the archive and IPA (defaults to the scheme)')
    parser.add_argument('--swift-packages-path', default='',
                        help='Swift package cache (SourcePackages) directory, cleared when it is found invalid')

    parser.add_argument('--export-method', choices=EXPORT_METHODS, default='development',
                        help='Distribution method of the exported IPA')
    parser.add_argument('--team-id', default='', help='Development team used for the export')
    parser.add_argument('--icloud-container-environment', default='',
                        help='iCloud container environment of the exported IPA')
    parser.add_argument('--upload-bitcode', action='store_true', help='Include bitcode for App Store uploads')
    parser.add_argument('--compile-bitcode', action='store_true', help='Recompile from bitcode on export')
    parser.add_argument('--custom-export-options-plist-content', default='',
                        help='Export options plist content used instead of the generated one')

    parser.add_argument('--force-team-id', default='')
    parser.add_argument('--force-provisioning-profile-specifier', default='')
    parser.add_argument('--force-provisioning-profile', default='')
    parser.add_argument('--force-code-sign-identity', default='')
    parser.add_argument('--is-clean-build', action='store_true', help='Run a clean before archiving')
    parser.add_argument('--xcodebuild-options', default='', help='Additional options passed to xcodebuild archive')
    parser.add_argument('--disable-index-while-building', action='store_true',
                        help='Turn off the index store while building')

    parser.add_argument('--verbose-log', action='store_true', help='Enable debug logging')
    parser.add_argument('--conffile', help='Path to configuration file in properties format.')

    return parser


def read_conffile(path, args):
    """Override ``args`` with the values of the conffile's DEFAULT section."""
    config = configparser.ConfigParser(interpolation=None)
    if not config.read(path):
        raise InputError(f"failed to read conffile: {path}")

    defaults = config['DEFAULT']
    for key in STRING_KEYS:
        if key in defaults:
            setattr(args, key, defaults[key])
    for key in BOOLEAN_KEYS:
        if key in defaults:
            try:
                setattr(args, key, defaults.getboolean(key))
            except ValueError as e:
                raise InputError(f"issue with input {key}: {e}") from e
    return args


def read_cli_arguments(argv=None):
    """Parse the command line; a conffile, when given, overrides it."""
    args = build_parser().parse_args(argv)
    if args.conffile:
        read_conffile(args.conffile, args)
    return args


def process_inputs(args):
    """Validate the inputs and normalize paths. Raises InputError."""
    if not args.project_path:
        raise InputError("issue with input ProjectPath: required")
    if os.path.splitext(args.project_path)[1] not in ('.xcodeproj', '.xcworkspace'):
        raise InputError("issue with input ProjectPath: should be and .xcodeproj or .xcworkspace path")
    if not args.scheme:
        raise InputError("issue with input Scheme: required")
    if not args.output_dir:
        raise InputError("issue with input OutputDir: required")
    if args.output_tool not in OUTPUT_TOOLS:
        raise InputError(f"issue with input OutputTool: should be one of {OUTPUT_TOOLS}")
    if args.export_method not in EXPORT_METHODS:
        raise InputError(f"issue with input ExportMethod: should be one of {EXPORT_METHODS}")
    if args.platform not in PLATFORMS:
        raise InputError(f"issue with input Platform: should be one of {PLATFORMS}")

    try:
        args.xcodebuild_options = split_xcodebuild_options(args.xcodebuild_options)
    except ValueError as e:
        raise InputError(f"issue with input XcodebuildOptions: {e}") from e

    if args.custom_export_options_plist_content:
        args.custom_export_options_plist_content = args.custom_export_options_plist_content.strip()
        try:
            plistlib.loads(args.custom_export_options_plist_content.encode())
        except (ValueError, ExpatError) as e:
            raise InputError(f"issue with input CustomExportOptionsPlistContent: {e}") from e
        logger.warning("CustomExportOptionsPlistContent is set, ignoring the export method, team id, "
                       "iCloud container environment and bitcode inputs")

    if args.force_provisioning_profile_specifier and args.force_provisioning_profile:
        logger.warning("both ForceProvisioningProfileSpecifier and ForceProvisioningProfile are set, "
                       "using ForceProvisioningProfileSpecifier")
        args.force_provisioning_profile = ''

    if not args.artifact_name:
        args.artifact_name = args.scheme

    args.project_path = os.path.abspath(os.path.expanduser(args.project_path))
    args.output_dir = os.path.abspath(os.path.expanduser(args.output_dir))
    if args.swift_packages_path:
        args.swift_packages_path = os.path.abspath(os.path.expanduser(args.swift_packages_path))

    os.makedirs(args.output_dir, exist_ok=True)
    return args
