from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

CONSTRUCTOR = "Constructor"
SET_UP = "SetUp"


@dataclass(frozen=True)
class DispatchTable:
    constructor: str | None = None
    set_up: str | None = None
    methods: list[str] = field(default_factory=list)

    @classmethod
    def from_names(cls, names: Iterable[str]) -> DispatchTable:
        constructor: str | None = None
        set_up: str | None = None
        methods: list[str] = []
        for name in names:
            if name == CONSTRUCTOR:
                constructor = name
            elif name == SET_UP:
                set_up = name
            else:
                methods.append(name)
        return cls(constructor=constructor, set_up=set_up, methods=methods)
