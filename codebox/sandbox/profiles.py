"""
Language Profile Registry - fixed recipes for every supported language.

Each profile knows the source filename, the Docker image, and the command run
inside the container. Only the fixed, language-derived filename is ever placed
into a command; submitted source text is written to a file and nothing else.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Tuple

from codebox.sandbox.errors import UnsupportedLanguage


# =============================================================================
# CONSTANTS
# =============================================================================

# Read-only mount point of the workspace inside the container
WORKSPACE_MOUNT = "/workspace"

# Writable scratch area (tmpfs) inside the container
SCRATCH_DIR = "/tmp"

# Base name used for every source file except Java's
SOURCE_BASENAME = "main"

# Java requires the public class to match the file name
JAVA_CLASS_NAME = "Main"


class Language(str, Enum):
    """Languages accepted by the runner."""
    PYTHON = "python"
    NODE = "node"
    C = "c"
    CPP = "cpp"
    JAVA = "java"


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class LanguageProfile:
    """How to run one language inside the sandbox."""
    id: str
    filename: str
    image: str
    command: Tuple[str, ...]
    # Whether the produced artifact is executed from the scratch area
    exec_scratch: bool = False

    @property
    def source_path(self) -> str:
        """Path of the source file inside the container."""
        return f"{WORKSPACE_MOUNT}/{self.filename}"


# =============================================================================
# COMMAND BUILDERS
# =============================================================================

def _interpreted(interpreter: str) -> Callable[[str], Tuple[str, ...]]:
    """Run the interpreter directly against the read-only mount."""
    def build(filename: str) -> Tuple[str, ...]:
        return (interpreter, filename)
    return build


def _compiled(compiler: str) -> Callable[[str], Tuple[str, ...]]:
    """Copy to scratch, compile there, then run the binary from scratch."""
    def build(filename: str) -> Tuple[str, ...]:
        binary = f"{SCRATCH_DIR}/{SOURCE_BASENAME}"
        script = (
            f"cp {WORKSPACE_MOUNT}/{filename} {SCRATCH_DIR} && "
            f"{compiler} -O2 -pipe {SCRATCH_DIR}/{filename} -o {binary} && "
            f"{binary}"
        )
        return ("/bin/sh", "-c", script)
    return build


def _java(filename: str) -> Tuple[str, ...]:
    script = (
        f"cp {WORKSPACE_MOUNT}/{filename} {SCRATCH_DIR} && "
        f"javac -d {SCRATCH_DIR} {SCRATCH_DIR}/{filename} && "
        f"cd {SCRATCH_DIR} && java {JAVA_CLASS_NAME}"
    )
    return ("/bin/sh", "-c", script)


# language -> (filename, image, command builder, exec_scratch)
_RECIPES: Dict[Language, Tuple[str, str, Callable[[str], Tuple[str, ...]], bool]] = {
    Language.PYTHON: (f"{SOURCE_BASENAME}.py", "python:3.11-alpine", _interpreted("python"), False),
    Language.NODE: (f"{SOURCE_BASENAME}.js", "node:20-alpine", _interpreted("node"), False),
    Language.C: (f"{SOURCE_BASENAME}.c", "gcc:13", _compiled("gcc"), True),
    Language.CPP: (f"{SOURCE_BASENAME}.cpp", "gcc:13", _compiled("g++"), True),
    Language.JAVA: (f"{JAVA_CLASS_NAME}.java", "openjdk:21-jdk-slim", _java, False),
}


def _build_registry() -> Mapping[str, LanguageProfile]:
    profiles = {}
    for language, (filename, image, builder, exec_scratch) in _RECIPES.items():
        profiles[language.value] = LanguageProfile(
            id=language.value,
            filename=filename,
            image=image,
            command=builder(filename),
            exec_scratch=exec_scratch,
        )
    return MappingProxyType(profiles)


# Built once at import, never mutated
PROFILES: Mapping[str, LanguageProfile] = _build_registry()


# =============================================================================
# LOOKUP
# =============================================================================

def resolve(language_id: object) -> LanguageProfile:
    """
    Return the profile for a language id.

    Raises:
        UnsupportedLanguage: If the id is missing or not recognized
    """
    if not isinstance(language_id, str) or language_id not in PROFILES:
        raise UnsupportedLanguage(language_id)
    return PROFILES[language_id]


def is_supported(language_id: object) -> bool:
    """Check whether a language id is in the supported set."""
    return isinstance(language_id, str) and language_id in PROFILES


def supported_languages() -> List[str]:
    """Supported language ids in declaration order."""
    return [language.value for language in Language]
