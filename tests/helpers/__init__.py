"""Test helper utilities for the vaultsync test suite."""

from tests.helpers.cli_assertions import (
    assert_command_failed,
    assert_command_success,
    assert_commit_lines,
    assert_error_message,
    assert_output_contains,
    assert_output_matches,
    assert_success_indicator,
)

__all__ = [
    "assert_command_success",
    "assert_command_failed",
    "assert_output_matches",
    "assert_output_contains",
    "assert_error_message",
    "assert_success_indicator",
    "assert_commit_lines",
]
