from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from pathlib import Path

from actorbundle.dispatch.lexer import (
    TK_IDENT,
    TK_LITERAL,
    TK_PUNCT,
    Group,
    Token,
    TokenTree,
    parse_source,
)
from actorbundle.dispatch.types import DispatchTable
from actorbundle.errors import (
    DispatchBlockError,
    DispatchNotFoundError,
    EntryPointNotFoundError,
    ExtractionError,
)

logger = logging.getLogger(__name__)

ENTRY_POINT = "invoke"
DISPATCH_MACRO = "match_method"


def _is_ident(tree: TokenTree, name: str) -> bool:
    return isinstance(tree, Token) and tree.kind == TK_IDENT and tree.value == name


def _is_punct(tree: TokenTree, text: str) -> bool:
    return isinstance(tree, Token) and tree.kind == TK_PUNCT and tree.text == text


def _is_brace(tree: TokenTree) -> bool:
    return isinstance(tree, Group) and tree.delimiter == "{"


def find_function_body(trees: Sequence[TokenTree], name: str) -> Group | None:
    """Body of the item-level ``fn <name>``; nested functions are not items."""
    for index, tree in enumerate(trees[:-1]):
        if not (_is_ident(tree, "fn") and _is_ident(trees[index + 1], name)):
            continue
        for follower in trees[index + 2 :]:
            if isinstance(follower, Group) and follower.delimiter == "{":
                return follower
            if _is_punct(follower, ";"):
                break
    return None


def find_macro_call(trees: Sequence[TokenTree], name: str) -> Group | None:
    for index, tree in enumerate(trees):
        if not _is_ident(tree, name) or index + 2 >= len(trees):
            continue
        bang, args = trees[index + 1], trees[index + 2]
        if _is_punct(bang, "!") and isinstance(args, Group):
            return args
    return None


def _arm_patterns(block: Group) -> Iterator[TokenTree]:
    """Yield the pattern-position trees of every arm in a match block."""
    in_pattern = True
    in_guard = False
    body_started = False
    for tree in block.trees:
        if in_pattern:
            if _is_punct(tree, "=>"):
                in_pattern = False
                in_guard = False
                body_started = False
            elif _is_ident(tree, "if"):
                in_guard = True
            elif not in_guard:
                yield tree
            continue
        if _is_punct(tree, ","):
            in_pattern = True
            continue
        if not body_started:
            body_started = True
            # a block body ends the arm, the trailing comma is optional
            if _is_brace(tree):
                in_pattern = True


def dispatch_keys(block: Group) -> list[str]:
    keys: list[str] = []
    for tree in _arm_patterns(block):
        if not isinstance(tree, Token) or tree.kind != TK_LITERAL:
            continue
        if not tree.is_string or tree.value is None:
            logger.debug("dispatch ignore non-string pattern %s at %s:%s", tree.text, tree.line, tree.col)
            continue
        keys.append(tree.value)
    return keys


def extract_dispatch_table(
    text: str,
    source: Path | str | None = None,
    *,
    entry_point: str = ENTRY_POINT,
    macro: str = DISPATCH_MACRO,
) -> DispatchTable:
    trees = parse_source(text, source)
    body = find_function_body(trees, entry_point)
    if body is None:
        raise EntryPointNotFoundError(f"could not find {entry_point} function", path=source)
    args = find_macro_call(body.trees, macro)
    if args is None:
        raise DispatchNotFoundError(
            f"could not find {macro} macro in the {entry_point} function", path=source
        )
    block = next((tree for tree in args.trees if _is_brace(tree)), None)
    if not isinstance(block, Group):
        raise DispatchBlockError(f"could not parse the {macro} contents", path=source)
    table = DispatchTable.from_names(dispatch_keys(block))
    logger.debug(
        "dispatch extracted source=%s constructor=%s set_up=%s methods=%s",
        source,
        table.constructor,
        table.set_up,
        len(table.methods),
    )
    return table


def extract_from_file(path: Path, *, unit: str | None = None) -> DispatchTable:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ExtractionError(f"could not open source: {exc}", unit=unit, path=path) from exc
    try:
        return extract_dispatch_table(text, path)
    except ExtractionError as exc:
        if exc.unit is None:
            exc.unit = unit
        raise
