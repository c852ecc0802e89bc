"""Tests for the log hygiene gate, and the gate run over the source tree."""

from pathlib import Path

import pytest

from scripts.check_log_hygiene import check_source, check_tree

SRC = Path(__file__).resolve().parent.parent / "src"


def test_source_tree_is_clean():
    assert check_tree(SRC / "zaphub") == []


@pytest.mark.parametrize(
    "source",
    [
        'logger.info("sent", extra={"extra_fields": safe_log_context(to=fingerprint(msg.remote_jid))})',
        'logger.info("stored", extra={"extra_fields": safe_log_context(text_len=len(msg.text))})',
        'logger.warning("bad secret")',
        "# print('debug')",
    ],
)
def test_allowed(source):
    assert check_source(source) == []


@pytest.mark.parametrize(
    "source,problem",
    [
        ('print("hi")', "print()"),
        ('logger.info("x", extra={"extra_fields": {"a": 1}})', "safe_log_context"),
        ('logger.info(f"from {sender}")', "interpolates"),
        (
            'logger.info(\n    "x",\n    extra={"extra_fields": safe_log_context(to=msg.remote_jid)},\n)',
            "remote_jid",
        ),
        ('logger.info("x", extra={"extra_fields": safe_log_context(body=msg.text)})', "text"),
    ],
)
def test_rejected(source, problem):
    errors = check_source(source)
    assert errors
    assert problem in errors[0]
