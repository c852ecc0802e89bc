#!/usr/bin/env python3
"""Log hygiene gate for runtime code.

Fails if:
- print( found in runtime code (src/**)
- a logger call passes extra= without safe_log_context
- a logger call logs a sender, JID, phone or message text other than
  through fingerprint() or len()

Usage:
    python scripts/check_log_hygiene.py [src_dir]
"""

import re
import sys
from pathlib import Path

PRINT_PATTERN = re.compile(r"\bprint\s*\(")

LOGGER_CALL_PATTERN = re.compile(
    r"\blogger\.(debug|info|warning|error|critical|exception)\s*\("
)

# Values that identify a person or carry what they wrote
SENSITIVE_PATTERN = re.compile(
    r"\b(remote_jid|sender|from_number|phone)\b|\.text\b|\.message\b"
)

# Wrappers that make a sensitive value safe to log
_SAFE_CALL = re.compile(r"\b(fingerprint|len)\((?:[^()]|\([^()]*\))*\)")
_STRING = re.compile(r"\"(?:[^\"\\]|\\.)*\"|'(?:[^'\\]|\\.)*'")
_KWARG_NAME = re.compile(r"\b\w+\s*=(?!=)")
_FSTRING_FIELD = re.compile(r"\bf\"[^\"]*\{([^}]*)\}")


def _call_text(lines: list[str], start: int, column: int) -> str:
    """Source of the call starting at lines[start][column], up to its closing paren."""
    depth = 0
    parts = []
    for line in lines[start:]:
        segment = line[column:] if not parts else line
        parts.append(segment)
        depth += segment.count("(") - segment.count(")")
        if depth <= 0:
            break
    return "\n".join(parts)


def check_call(call: str) -> list[str]:
    """Problems with a single logger call's source text."""
    problems = []
    if "extra=" in call and "safe_log_context" not in call:
        problems.append("extra= must go through safe_log_context")

    for field in _FSTRING_FIELD.findall(call):
        if SENSITIVE_PATTERN.search(field):
            problems.append(f"message interpolates sensitive value {{{field}}}")

    values = _KWARG_NAME.sub(" ", _STRING.sub('""', _SAFE_CALL.sub("0", call)))
    match = SENSITIVE_PATTERN.search(values)
    if match:
        problems.append(f"logs {match.group(0).lstrip('.')} without fingerprint()/len()")
    return problems


def check_source(text: str, label: str = "<source>") -> list[str]:
    errors = []
    lines = text.splitlines()
    for lineno, line in enumerate(lines, start=1):
        code = line.split("#", 1)[0]
        if not code.strip():
            continue
        if PRINT_PATTERN.search(code):
            errors.append(f"{label}:{lineno}: print() not allowed in runtime code")
        match = LOGGER_CALL_PATTERN.search(code)
        if match:
            call = _call_text(lines, lineno - 1, match.start())
            for problem in check_call(call):
                errors.append(f"{label}:{lineno}: {problem}")
    return errors


def check_tree(src_dir: Path) -> list[str]:
    all_errors: list[str] = []
    for pyfile in sorted(src_dir.rglob("*.py")):
        all_errors.extend(check_source(pyfile.read_text(encoding="utf-8"), str(pyfile)))
    return all_errors


def main(argv: list[str]) -> int:
    src_dir = Path(argv[1]) if len(argv) > 1 else Path(__file__).parent.parent / "src"
    if not src_dir.exists():
        sys.stderr.write(f"Error: {src_dir} not found\n")
        return 1

    errors = check_tree(src_dir)
    if errors:
        sys.stderr.write("Log hygiene check FAILED:\n")
        for err in errors:
            sys.stderr.write(f"  {err}\n")
        return 1

    sys.stdout.write("Log hygiene check passed\n")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
