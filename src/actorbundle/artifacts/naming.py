from __future__ import annotations

from actorbundle.config import NamingSettings
from actorbundle.errors import AssemblyError
from actorbundle.units.types import UnitKind

_SEPARATORS = frozenset("-_ ")


def compiled_file_stem(name: str, naming: NamingSettings) -> str:
    """File stem the compiler gives the output of package ``name``."""
    stem = name
    for declared, emitted in naming.substitutions:
        stem = stem.replace(declared, emitted)
    return stem


def _boundary(prev: str, ch: str, nxt: str) -> bool:
    if prev.islower() and ch.isupper():
        return True
    if prev.isupper() and ch.isupper() and nxt.islower():
        return True
    if prev.isalpha() and ch.isdigit():
        return True
    if prev.isdigit() and ch.isalpha():
        return True
    return False


def split_words(value: str) -> list[str]:
    words: list[str] = []
    current = ""
    for index, ch in enumerate(value):
        if ch in _SEPARATORS:
            if current:
                words.append(current)
            current = ""
            continue
        nxt = value[index + 1] if index + 1 < len(value) else ""
        if current and _boundary(current[-1], ch, nxt):
            words.append(current)
            current = ""
        current += ch
    if current:
        words.append(current)
    return words


def pascal_case(value: str) -> str:
    return "".join(word[:1].upper() + word[1:].lower() for word in split_words(value))


def bundle_name(name: str, kind: UnitKind, naming: NamingSettings | None = None) -> str:
    naming = naming or NamingSettings()
    if kind is UnitKind.TEST:
        index = name.rfind(naming.test_token)
        if index < 0:
            raise AssemblyError(
                f"should be a test actor, but doesn't have {naming.test_token!r} in its name",
                unit=name,
            )
        name = name[:index] + naming.test_marker
    return pascal_case(name)
