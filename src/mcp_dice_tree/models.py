from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, TypeAlias, TypeGuard


ALLOWED_DIE_SIDES: set[int] = {4, 6, 8, 10, 12, 20, 100}

PERCENTILE_DIE = "D100"
TEN_SIDED_DIE = "D10"
DEFAULT_DIE_STYLE = "GALAXY"

# Forbidden Lands gear and base dice are the only ones whose 1s count as fails.
FBL_FAIL_STYLES: frozenset[str] = frozenset({"FBLGEAR", "FBLBASE"})

Combination: TypeAlias = Literal["SUM", "HIGHEST", "LOWEST", "NONE"]
COMBINATIONS: tuple[Combination, ...] = ("SUM", "HIGHEST", "LOWEST", "NONE")

Mode: TypeAlias = Literal["advantage", "disadvantage", "none"]
DieMode: TypeAlias = Literal["advantage", "disadvantage", "normal"]

# Raw face values keyed by die id. A 0 on a D10 (or a D100/D10 pair) means max.
Values: TypeAlias = Mapping[str, int]


@dataclass(frozen=True)
class Die:
    id: str
    type: str
    style: str = DEFAULT_DIE_STYLE


@dataclass(frozen=True)
class Dice:
    dice: tuple[DieOrDice, ...]
    combination: Combination | None = None
    bonus: int | None = None


DieOrDice: TypeAlias = "Die | Dice"


def is_die(node: Any) -> TypeGuard[Die]:
    return isinstance(node, Die)


def is_dice(node: Any) -> TypeGuard[Dice]:
    return isinstance(node, Dice)


def iter_dice(dice: Dice):
    """Yield every leaf die of a tree in reading order."""
    for node in dice.dice:
        if is_die(node):
            yield node
        elif is_dice(node):
            yield from iter_dice(node)


@dataclass(frozen=True)
class DieTerm:
    count: int
    sides: int
    mode: DieMode = "normal"


@dataclass(frozen=True)
class ConstantTerm:
    value: int


ParsedTerm: TypeAlias = DieTerm | ConstantTerm


@dataclass(frozen=True)
class ParsedDiceRequest:
    input: str
    normalized_input: str
    mode: Mode
    dice: Dice
    normalized_expression: str
