"""
Domain Services

Text heuristics applied to sandbox output and source buffers.
"""

import re
from pathlib import PurePosixPath
from typing import Iterable, Optional, Tuple

from code_runner.domain.value_objects import InputRequirement


DEFAULT_NOISE_PATTERNS: Tuple[str, ...] = (
    "isolate:",
    "cgroup",
    "Failed to create control group",
)

EXTENSION_LANGUAGES = {
    ".py": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".ts": "typescript",
}

INPUT_CALL_PATTERNS = {
    "python": re.compile(r"\binput\s*\("),
    "javascript": re.compile(r"\b(?:prompt|readline)\s*\("),
    "typescript": re.compile(r"\b(?:prompt|readline)\s*\("),
}

LINE_COMMENT_PREFIXES = {
    "python": "#",
    "javascript": "//",
    "typescript": "//",
}


class StderrNoiseFilter:
    """
    Removes sandbox infrastructure diagnostics from stderr chunks.

    Any line containing one of the configured substrings is dropped.
    """

    def __init__(self, patterns: Iterable[str] = DEFAULT_NOISE_PATTERNS):
        self.patterns = tuple(p for p in patterns if p)

    def is_noise(self, line: str) -> bool:
        return any(pattern in line for pattern in self.patterns)

    def filter(self, text: str) -> str:
        """
        Filter a stderr chunk.

        Returns:
            The remaining text, or an empty string if nothing visible is left
        """
        kept = [line for line in text.splitlines(keepends=True) if not self.is_noise(line)]
        remainder = "".join(kept)
        if not remainder.strip():
            return ""
        return remainder


def looks_like_input_prompt(text: str) -> bool:
    """
    Guess whether stdout text ends with a prompt for user input.

    Best-effort only: the sandbox never says it is waiting for stdin.
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines:
        return False
    last = lines[-1]
    return last.endswith(":") or last.endswith("?") or "input" in last.lower()


def infer_language(filename: str, default: str = "python") -> str:
    suffix = PurePosixPath(filename).suffix.lower()
    return EXTENSION_LANGUAGES.get(suffix, default)


def count_expected_inputs(source_code: str, language: str = "python") -> int:
    """
    Count input-call occurrences in source text.

    Line comments are skipped; strings and dead code are not.
    """
    pattern = INPUT_CALL_PATTERNS.get(language, INPUT_CALL_PATTERNS["python"])
    prefix = LINE_COMMENT_PREFIXES.get(language, "#")
    count = 0
    for line in source_code.splitlines():
        code = line.split(prefix, 1)[0]
        count += len(pattern.findall(code))
    return count


def count_supplied_inputs(stdin: Optional[str]) -> int:
    if not stdin:
        return 0
    return len(stdin.splitlines())


def input_requirement(source_code: str, stdin: Optional[str], language: str = "python") -> InputRequirement:
    return InputRequirement(
        expected=count_expected_inputs(source_code, language),
        supplied=count_supplied_inputs(stdin),
    )
