"""
Request and result types for a single sandboxed execution.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from codebox.sandbox import profiles
from codebox.sandbox.errors import MissingCode, PayloadTooLarge, UnsupportedLanguage


# Size bound for submitted source, also used to cap each captured output stream
MAX_CODE_CHARS = 300_000


@dataclass(frozen=True)
class ExecutionRequest:
    """One accepted submission. Never constructed for invalid input."""
    language: str
    source: str
    stdin: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ExecutionRequest":
        """
        Validate a raw submission and build the request.

        The language is checked first, then the code, so a submission that is
        wrong on both counts is reported as an unsupported language.

        Raises:
            UnsupportedLanguage: Language missing or not recognized
            MissingCode: Code missing or empty
            PayloadTooLarge: Code or stdin longer than MAX_CODE_CHARS
        """
        language = payload.get("language")
        if not profiles.is_supported(language):
            raise UnsupportedLanguage(language)

        code = payload.get("code")
        if not isinstance(code, str) or not code:
            raise MissingCode()
        if len(code) > MAX_CODE_CHARS:
            raise PayloadTooLarge(len(code), MAX_CODE_CHARS)

        stdin = payload.get("stdin")
        if stdin is not None and not isinstance(stdin, str):
            stdin = str(stdin)
        if stdin and len(stdin) > MAX_CODE_CHARS:
            raise PayloadTooLarge(len(stdin), MAX_CODE_CHARS)

        return cls(language=language, source=code, stdin=stdin or None)


@dataclass(frozen=True)
class ExecutionResult:
    """Normalized outcome of one run."""
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
