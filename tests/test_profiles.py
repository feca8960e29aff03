import pytest

from codebox.sandbox import profiles
from codebox.sandbox.errors import UnsupportedLanguage


def test_supported_set():
    assert profiles.supported_languages() == ["python", "node", "c", "cpp", "java"]


@pytest.mark.parametrize("language, filename, image", [
    ("python", "main.py", "python:3.11-alpine"),
    ("node", "main.js", "node:20-alpine"),
    ("c", "main.c", "gcc:13"),
    ("cpp", "main.cpp", "gcc:13"),
    ("java", "Main.java", "openjdk:21-jdk-slim"),
])
def test_profiles(language, filename, image):
    profile = profiles.resolve(language)
    assert profile.id == language
    assert profile.filename == filename
    assert profile.image == image


def test_interpreted_runs_against_mount():
    assert profiles.resolve("python").command == ("python", "main.py")
    assert profiles.resolve("node").command == ("node", "main.js")
    assert profiles.resolve("python").exec_scratch is False


def test_compiled_copies_to_scratch_first():
    command = profiles.resolve("c").command
    assert command[:2] == ("/bin/sh", "-c")
    script = command[2]
    assert script.startswith("cp /workspace/main.c /tmp && gcc ")
    assert script.endswith("&& /tmp/main")
    assert profiles.resolve("c").exec_scratch is True
    assert "g++ " in profiles.resolve("cpp").command[2]


def test_java_uses_fixed_class_name():
    profile = profiles.resolve("java")
    assert "javac -d /tmp /tmp/Main.java" in profile.command[2]
    assert profile.command[2].endswith("java Main")
    assert profile.source_path == "/workspace/Main.java"


@pytest.mark.parametrize("language", ["cobol", "Python", "", None, 3, "python; rm -rf /"])
def test_unknown_languages_rejected(language):
    with pytest.raises(UnsupportedLanguage):
        profiles.resolve(language)
    assert profiles.is_supported(language) is False


def test_registry_is_read_only():
    with pytest.raises(TypeError):
        profiles.PROFILES["ruby"] = profiles.PROFILES["python"]
