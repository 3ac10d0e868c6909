"""Deterministic hashes of tool implementations.

Complements the definition checksum: where the checksum pins what a tool
claims to be, the implementation hash pins the code that runs behind it.
"""

import hashlib
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_EXTENSIONS = (".go", ".py", ".js", ".java", ".cpp", ".c", ".rs")
CHUNK_SIZE = 64 * 1024


@dataclass
class ToolImplementation:
    """Source layout of a tool's implementation."""

    name: str
    main_file: str
    version: str = ""
    source_files: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class HashComparison:
    hash1: str
    hash2: str

    @property
    def match(self) -> bool:
        return self.hash1 == self.hash2

    @property
    def changed(self) -> bool:
        return not self.match


def normalize_code(code: str) -> str:
    """Unify line endings and drop trailing whitespace and trailing blank lines."""
    normalized = code.replace("\r\n", "\n").replace("\r", "\n")
    lines = [line.rstrip(" \t") for line in normalized.split("\n")]
    while lines and lines[-1] == "":
        lines.pop()
    return "\n".join(lines)


class CodeHasher:
    """SHA-256 hashing of tool source code.

    Files and dependencies are hashed in sorted order so the result does
    not depend on how the caller listed them. Each file contributes its path
    as well as its contents.
    """

    def _hash_file(self, digest: Any, path: str) -> None:
        digest.update(f"file:{path}".encode("utf-8"))
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                digest.update(chunk)

    def _hash_dependencies(self, digest: Any, dependencies: list[str]) -> None:
        for dep in sorted(dependencies):
            digest.update(f"dep:{dep}".encode("utf-8"))

    def generate_tool_hash(self, tool: ToolImplementation) -> str:
        """Hash metadata, main file, sorted source files and sorted dependencies.

        Raises:
            OSError: If a source file cannot be read
        """
        digest = hashlib.sha256()
        digest.update(f"name:{tool.name}".encode("utf-8"))
        digest.update(f"version:{tool.version}".encode("utf-8"))
        self._hash_file(digest, tool.main_file)
        for path in sorted(tool.source_files):
            self._hash_file(digest, path)
        self._hash_dependencies(digest, tool.dependencies)
        return digest.hexdigest()

    def generate_code_only_hash(self, source_files: list[str]) -> str:
        """Hash source files only, ignoring tool metadata."""
        digest = hashlib.sha256()
        for path in sorted(source_files):
            self._hash_file(digest, path)
        return digest.hexdigest()

    def generate_string_hash(self, code: str, dependencies: list[str] | None = None) -> str:
        """Hash source code given as a string, after normalization."""
        digest = hashlib.sha256()
        digest.update(normalize_code(code).encode("utf-8"))
        self._hash_dependencies(digest, dependencies or [])
        return digest.hexdigest()


def discover_source_files(
    root_dir: str | Path = ".", extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
) -> list[str]:
    """Walk ``root_dir`` and return files whose extension is in ``extensions``."""
    wanted = {ext.lower() for ext in extensions}
    found: list[str] = []
    for dirpath, _dirnames, filenames in os.walk(root_dir):
        for filename in filenames:
            if Path(filename).suffix.lower() in wanted:
                found.append(os.path.join(dirpath, filename))
    return sorted(found)


def compare_hashes(hash1: str, hash2: str) -> HashComparison:
    return HashComparison(hash1=hash1, hash2=hash2)
