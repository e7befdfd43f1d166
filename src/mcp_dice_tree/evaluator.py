"""Reduce a rolled dice tree to the number a player sees.

Every reducer walks the tree post-order. At each group the percentile
(D100 + D10) pairing is tried first; otherwise each leaf contributes
through the reducer's leaf rule and each nested group through the
reducer's nested evaluator, and the contributions are combined with the
group's combination policy and bonus.

``None`` means "nothing resolved yet" and is distinct from a result of 0.
Unresolved or unrecognised nodes are skipped, never raised on.
"""

from __future__ import annotations

import logging
from typing import Callable, Literal, TypeAlias

from .errors import DiceError
from .models import (
    FBL_FAIL_STYLES,
    PERCENTILE_DIE,
    TEN_SIDED_DIE,
    Dice,
    Die,
    Values,
    is_dice,
    is_die,
)

logger = logging.getLogger(__name__)

EvaluationMode: TypeAlias = Literal["standard", "fbl_success", "fbl_fail"]
EVALUATION_MODES: tuple[EvaluationMode, ...] = ("standard", "fbl_success", "fbl_fail")

LeafRule: TypeAlias = Callable[[Die, int], "int | None"]
GroupEvaluator: TypeAlias = Callable[[Dice, Values], "int | None"]

# Forbidden Lands successes per face value, for faces of 6 and up.
FBL_SUCCESS_TIERS: dict[int, int] = {
    6: 1,
    7: 1,
    8: 2,
    9: 2,
    10: 3,
    11: 3,
    12: 5,
}


def check_percentile_combination(dice: Dice, values: Values) -> int | None:
    """Return the combined result of a D100 (tens) + D10 (units) pair.

    Only a two-die SUM group with the D100 first and the D10 second, both
    resolved, qualifies. Two zeros read as 100.
    """
    if len(dice.dice) != 2 or dice.combination not in (None, "SUM"):
        return None

    tens, units = dice.dice
    if not (is_die(tens) and is_die(units)):
        return None
    if tens.type != PERCENTILE_DIE or units.type != TEN_SIDED_DIE:
        return None

    tens_value = values.get(tens.id)
    units_value = values.get(units.id)
    if tens_value is None or units_value is None:
        return None

    bonus = dice.bonus or 0
    if tens_value == 0 and units_value == 0:
        return 100 + bonus
    return tens_value + units_value + bonus


def _combine(dice: Dice, contributions: list[int]) -> int | None:
    if not contributions or dice.combination == "NONE":
        return dice.bonus

    bonus = dice.bonus or 0
    if dice.combination == "HIGHEST":
        return max(contributions) + bonus
    if dice.combination == "LOWEST":
        return min(contributions) + bonus
    return sum(contributions) + bonus


def reduce_dice(
    dice: Dice,
    values: Values,
    leaf_rule: LeafRule,
    nested: GroupEvaluator,
) -> int | None:
    """Shared tree walk behind every reducer.

    ``leaf_rule`` maps a resolved die and its raw value to a contribution
    (or ``None`` for no contribution); ``nested`` evaluates child groups.
    """
    percentile = check_percentile_combination(dice, values)
    if percentile is not None:
        logger.debug("Percentile pair resolved to %d", percentile)
        return percentile

    contributions: list[int] = []
    for node in dice.dice:
        if is_die(node):
            value = values.get(node.id)
            if value is None:
                continue
            contribution = leaf_rule(node, value)
        elif is_dice(node):
            contribution = nested(node, values)
        else:
            logger.debug("Skipping unrecognised dice node %r", node)
            continue

        if contribution is not None:
            contributions.append(contribution)

    return _combine(dice, contributions)


def _standard_leaf(die: Die, value: int) -> int | None:
    if value == 0 and die.type == TEN_SIDED_DIE:
        return 10
    return value


def _fbl_success_leaf(die: Die, value: int) -> int | None:
    if value == 0 and die.type == TEN_SIDED_DIE:
        return 1
    return FBL_SUCCESS_TIERS.get(value)


def _fbl_fail_leaf(die: Die, value: int) -> int | None:
    if value == 0 and die.type == TEN_SIDED_DIE:
        return None
    if value == 1 and die.style in FBL_FAIL_STYLES:
        return 1
    return None


def get_combined_dice_value(dice: Dice, values: Values) -> int | None:
    """Recursively get the final result for a roll of dice.

    Args:
        dice: The group to reduce.
        values: Mapping of die id to its raw rolled value.

    Returns:
        The combined result including bonuses, or ``None`` if nothing has
        resolved and no bonus is set.
    """
    return reduce_dice(dice, values, _standard_leaf, get_combined_dice_value)


def get_success_dice_value_fbl(dice: Dice, values: Values) -> int | None:
    """Recursively count Forbidden Lands successes for a roll of dice."""
    return reduce_dice(dice, values, _fbl_success_leaf, get_success_dice_value_fbl)


def get_fail_dice_value_fbl(dice: Dice, values: Values) -> int | None:
    """Recursively count Forbidden Lands fails (1s on gear and base dice).

    Nested groups are reduced with :func:`get_combined_dice_value`, not with
    fail counting.
    """
    # TODO: confirm with the Forbidden Lands rules owner whether nested
    # groups should count fails too before switching the nested evaluator.
    return reduce_dice(dice, values, _fbl_fail_leaf, get_combined_dice_value)


_EVALUATORS: dict[str, GroupEvaluator] = {
    "standard": get_combined_dice_value,
    "fbl_success": get_success_dice_value_fbl,
    "fbl_fail": get_fail_dice_value_fbl,
}


def evaluate(dice: Dice, values: Values, mode: EvaluationMode = "standard") -> int | None:
    """Reduce ``dice`` with the reducer for ``mode``. Raises DiceError for an unknown mode."""
    evaluator = _EVALUATORS.get(mode)
    if evaluator is None:
        raise DiceError(
            f"[INVALID_MODE] Unknown evaluation mode '{mode}'. Use one of: {', '.join(EVALUATION_MODES)}."
        )
    return evaluator(dice, values)
