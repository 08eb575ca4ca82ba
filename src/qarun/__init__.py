"""qarun — resumable browser acceptance-test runner."""

__version__ = "0.1.0"
