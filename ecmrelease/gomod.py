"""Reading the require and replace directives of a go.mod file."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field

from .semver import is_valid

_KNOWN_DIRECTIVES = frozenset(
    {"module", "go", "toolchain", "godebug", "require", "exclude", "replace", "retract"}
)
_LEXEME = re.compile(r'//.*|"(?:[^"\\]|\\.)*"|`[^`]*`|=>|[()]|(?:(?!=>)[^\s"`()])+')
_WINDOWS_ROOT = re.compile(r"[A-Za-z]:[\\/]")


@dataclass(frozen=True)
class ModuleVersion:
    """A module path with a version; the version is empty for local paths."""

    path: str
    version: str = ""


@dataclass
class GoMod:
    """The parsed contents of a go.mod file."""

    module: str | None = None
    go: str | None = None
    requires: list[ModuleVersion] = field(default_factory=list)
    replaces: list[tuple[ModuleVersion, ModuleVersion]] = field(default_factory=list)

    def find_version(self, library: str) -> str | None:
        """Return the version of the first module whose path contains ``library``.

        Replacements take precedence over requirements. ``None`` means the
        library is not mentioned at all.
        """
        for old, new in self.replaces:
            if library in old.path:
                return new.version
        for required in self.requires:
            if library in required.path:
                return required.version
        return None


def _lexemes(line: str) -> list[str]:
    result = []
    for piece in _LEXEME.findall(line):
        if piece.startswith("//"):
            break
        if piece.startswith('"'):
            piece = json.loads(piece)
        elif piece.startswith("`"):
            piece = piece[1:-1]
        result.append(piece)
    return result


def _is_directory_path(path: str) -> bool:
    return (
        path in (".", "..")
        or path.startswith(("./", "../", "/", ".\\", "..\\"))
        or _WINDOWS_ROOT.match(path) is not None
    )


def _check_version(lineno: int, version: str) -> str:
    if not is_valid(version):
        raise ValueError(f"line {lineno}: version {version!r} invalid: must be of the form v1.2.3")
    return version


def _apply(mod: GoMod, lineno: int, verb: str, args: list[str]) -> None:
    if verb == "module":
        if len(args) != 1:
            raise ValueError(f"line {lineno}: usage: module module/path")
        mod.module = args[0]
    elif verb == "go":
        if len(args) != 1:
            raise ValueError(f"line {lineno}: usage: go 1.23")
        mod.go = args[0]
    elif verb in ("require", "exclude"):
        if len(args) != 2:
            raise ValueError(f"line {lineno}: usage: {verb} module/path v1.2.3")
        entry = ModuleVersion(args[0], _check_version(lineno, args[1]))
        if verb == "require":
            mod.requires.append(entry)
    elif verb == "replace":
        mod.replaces.append(_parse_replace(lineno, args))


def _parse_replace(lineno: int, args: list[str]) -> tuple[ModuleVersion, ModuleVersion]:
    usage = f"line {lineno}: usage: replace module/path [v1.2.3] => other/module v1.4 or replace module/path [v1.2.3] => ../local/directory"
    if "=>" not in args:
        raise ValueError(usage)
    arrow = args.index("=>")
    left, right = args[:arrow], args[arrow + 1:]
    if len(left) not in (1, 2) or len(right) not in (1, 2):
        raise ValueError(usage)
    old = ModuleVersion(left[0], _check_version(lineno, left[1]) if len(left) == 2 else "")
    if len(right) == 1:
        if not _is_directory_path(right[0]):
            raise ValueError(
                f"line {lineno}: replacement module without version must be directory path "
                "(rooted or starting with ./ or ../)"
            )
        return old, ModuleVersion(right[0])
    if _is_directory_path(right[0]):
        raise ValueError(f"line {lineno}: replacement module directory path must not have a version")
    return old, ModuleVersion(right[0], _check_version(lineno, right[1]))


def parse_go_mod(text: str) -> GoMod:
    """Parse the text of a go.mod file, raising ValueError when it is malformed."""
    mod = GoMod()
    block: str | None = None
    block_start = 0
    for lineno, line in enumerate(text.splitlines(), start=1):
        words = _lexemes(line)
        if not words:
            continue
        if block is not None:
            if words == [")"]:
                block = None
                continue
            if block != "retract":
                _apply(mod, lineno, block, words)
            continue
        verb, args = words[0], words[1:]
        if verb not in _KNOWN_DIRECTIVES:
            raise ValueError(f"line {lineno}: unknown directive: {verb}")
        if args == ["("]:
            block, block_start = verb, lineno
            continue
        if verb != "retract":
            _apply(mod, lineno, verb, args)
    if block is not None:
        raise ValueError(f"line {block_start}: unterminated {block} block")
    return mod