"""Tests for building and running xcodebuild commands."""

import sys

import pytest

from xcode_archive import xcpretty
from xcode_archive.commands import (
    XcodebuildCommand,
    new_archive_command,
    new_export_command,
    split_xcodebuild_options,
)
from xcode_archive.errors import CommandError, XcprettyInstallError
from xcode_archive.xcpretty import XcprettyCommand


def python_command(code):
    return XcodebuildCommand([sys.executable, '-c', code])


def test_archive_command_for_workspace():
    cmd = new_archive_command(
        '/src/App.xcworkspace', 'App', '/tmp/App.xcarchive',
        configuration='Release', destination='generic/platform=iOS',
    )

    assert list(cmd.args) == [
        'xcodebuild', '-workspace', '/src/App.xcworkspace', '-scheme', 'App', '-configuration', 'Release',
        'archive', '-archivePath', '/tmp/App.xcarchive', '-destination', 'generic/platform=iOS',
    ]


def test_archive_command_for_project_with_options():
    cmd = new_archive_command(
        '/src/App.xcodeproj', 'App', '/tmp/App.xcarchive',
        destination='generic/platform=iOS',
        custom_options=['-destination', 'platform=iOS Simulator,name=iPhone 15', '-quiet'],
        is_clean_build=True,
        disable_index_while_building=True,
        force_team_id='TEAM123',
        force_provisioning_profile_specifier='App Store Profile',
        force_code_sign_identity='Apple Distribution',
    )

    assert list(cmd.args) == [
        'xcodebuild', '-project', '/src/App.xcodeproj', '-scheme', 'App',
        'clean', 'archive', '-archivePath', '/tmp/App.xcarchive',
        '-destination', 'platform=iOS Simulator,name=iPhone 15', '-quiet',
        'COMPILER_INDEX_STORE_ENABLE=NO',
        'DEVELOPMENT_TEAM=TEAM123',
        'PROVISIONING_PROFILE_SPECIFIER=App Store Profile',
        'CODE_SIGN_IDENTITY=Apple Distribution',
    ]


def test_export_command():
    cmd = new_export_command('/tmp/App.xcarchive', '/tmp/exported', '/tmp/export_options.plist')

    assert cmd.printable_cmd() == (
        'xcodebuild -exportArchive -archivePath /tmp/App.xcarchive '
        '-exportPath /tmp/exported -exportOptionsPlist /tmp/export_options.plist'
    )


def test_printable_cmd_quotes_arguments():
    cmd = XcodebuildCommand(['xcodebuild', '-scheme', 'My App'])

    assert cmd.printable_cmd() == "xcodebuild -scheme 'My App'"


def test_split_xcodebuild_options():
    assert split_xcodebuild_options('') == []
    assert split_xcodebuild_options('-quiet "OTHER_SWIFT_FLAGS=-D CI"') == ['-quiet', 'OTHER_SWIFT_FLAGS=-D CI']
    with pytest.raises(ValueError):
        split_xcodebuild_options('-quiet "unterminated')


def test_run_returns_combined_output():
    cmd = python_command("import sys; print('out'); sys.stdout.flush(); print('err', file=sys.stderr)")

    output = cmd.run()

    assert 'out' in output
    assert 'err' in output


def test_run_failure_keeps_output():
    cmd = python_command("import sys; print('error: build failed'); sys.exit(65)")

    with pytest.raises(CommandError) as exc_info:
        cmd.run()

    assert exc_info.value.exit_code == 65
    assert exc_info.value.output == 'error: build failed\n'
    assert str(exc_info.value).startswith('command failed with exit status 65')


def test_run_missing_executable():
    cmd = XcodebuildCommand(['/nonexistent/xcodebuild', 'archive'])

    with pytest.raises(CommandError) as exc_info:
        cmd.run()

    assert exc_info.value.exit_code is None
    assert str(exc_info.value) == 'executing command failed (/nonexistent/xcodebuild archive)'


def test_xcpretty_returns_raw_output(monkeypatch):
    monkeypatch.setattr(xcpretty, 'XCPRETTY', 'cat')
    cmd = XcprettyCommand(python_command("print('CompileSwift normal arm64')"))

    assert cmd.run() == 'CompileSwift normal arm64\n'


def test_xcpretty_propagates_build_failure(monkeypatch):
    monkeypatch.setattr(xcpretty, 'XCPRETTY', 'cat')
    cmd = XcprettyCommand(python_command("import sys; print('error: boom'); sys.exit(65)"))

    with pytest.raises(CommandError) as exc_info:
        cmd.run()

    assert exc_info.value.exit_code == 65
    assert exc_info.value.output == 'error: boom\n'
    assert exc_info.value.printable_cmd.startswith('set -o pipefail && ')


def test_xcpretty_missing_formatter_is_a_failure(monkeypatch):
    monkeypatch.setattr(xcpretty, 'XCPRETTY', '/nonexistent/xcpretty')
    cmd = XcprettyCommand(python_command("print('ok')"))

    with pytest.raises(CommandError) as exc_info:
        cmd.run()

    assert exc_info.value.exit_code is None


def test_ensure_installed_raises_when_install_fails(monkeypatch):
    def failing_install():
        raise XcprettyInstallError('gem install xcpretty --no-document failed: permission denied')

    monkeypatch.setattr(xcpretty, 'is_installed', lambda: False)
    monkeypatch.setattr(xcpretty, 'install', failing_install)

    with pytest.raises(XcprettyInstallError):
        xcpretty.ensure_installed()


def test_ensure_installed_skips_install(monkeypatch):
    monkeypatch.setattr(xcpretty, 'is_installed', lambda: True)
    monkeypatch.setattr(xcpretty, 'install', lambda: pytest.fail('should not install'))
    monkeypatch.setattr(xcpretty, 'version', lambda: '0.3.0')

    assert xcpretty.ensure_installed() == '0.3.0'


INVALID_UTF8_FAILURE = (
    "import sys; sys.stdout.buffer.write(b'\\xff\\xfe Could not resolve package dependencies:\\n'); sys.exit(65)"
)


def test_run_failure_with_invalid_utf8_output():
    cmd = python_command(INVALID_UTF8_FAILURE)

    with pytest.raises(CommandError) as exc_info:
        cmd.run()

    assert exc_info.value.exit_code == 65
    assert exc_info.value.output == '\ufffd\ufffd Could not resolve package dependencies:\n'


def test_xcpretty_with_invalid_utf8_output(monkeypatch):
    monkeypatch.setattr(xcpretty, 'XCPRETTY', 'cat')
    cmd = XcprettyCommand(python_command(INVALID_UTF8_FAILURE))

    with pytest.raises(CommandError) as exc_info:
        cmd.run()

    assert exc_info.value.exit_code == 65
    assert 'Could not resolve package dependencies:' in exc_info.value.output


def test_xcpretty_failure_fails_a_successful_build(monkeypatch):
    monkeypatch.setattr(xcpretty, 'XCPRETTY', 'false')
    cmd = XcprettyCommand(python_command("print('** ARCHIVE SUCCEEDED **')"))

    with pytest.raises(CommandError) as exc_info:
        cmd.run()

    assert exc_info.value.exit_code == 1
    assert exc_info.value.output == '** ARCHIVE SUCCEEDED **\n'
