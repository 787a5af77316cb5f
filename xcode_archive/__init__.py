"""Archive and export iOS apps with xcodebuild, and talk to the Developer Portal through spaceship."""

__version__ = '0.1.0'
