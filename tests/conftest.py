"""Shared fixtures: scripted stand-ins for xcodebuild and spaceship processes."""

import subprocess

import pytest


class FakeCommand:
    """Replays a fixed list of outcomes; an exception outcome is raised."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def printable_cmd(self):
        return "xcodebuild archive -scheme App"

    def run(self):
        outcome = self.outcomes[self.calls]
        self.calls += 1
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeRunner:
    """Stands in for subprocess.run, answering with (returncode, output) pairs."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, args, **kwargs):
        self.calls.append((args, kwargs))
        returncode, output = self.responses[len(self.calls) - 1]
        return subprocess.CompletedProcess(args, returncode, stdout=output)


@pytest.fixture
def fake_command():
    return FakeCommand


@pytest.fixture
def fake_runner():
    return FakeRunner


@pytest.fixture
def sleeps():
    return []
