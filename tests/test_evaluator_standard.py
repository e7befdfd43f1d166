import pytest

from mcp_dice_tree.errors import DiceError
from mcp_dice_tree.evaluator import evaluate, get_combined_dice_value
from mcp_dice_tree.models import Dice, Die


def d(die_id, die_type="D6", style="GALAXY"):
    return Die(id=die_id, type=die_type, style=style)


@pytest.mark.parametrize(
    ("bonus", "expected"),
    [(None, 9), (0, 9), (3, 12), (-2, 7)],
)
def test_sum_adds_values_and_bonus(bonus, expected):
    dice = Dice(dice=(d("a"), d("b"), d("c")), bonus=bonus)
    assert get_combined_dice_value(dice, {"a": 2, "b": 3, "c": 4}) == expected


def test_explicit_sum_matches_default():
    dice = Dice(dice=(d("a"), d("b")), combination="SUM", bonus=1)
    assert get_combined_dice_value(dice, {"a": 5, "b": 6}) == 12


@pytest.mark.parametrize(
    ("combination", "expected"),
    [("HIGHEST", 19), ("LOWEST", 6)],
)
def test_highest_and_lowest_ignore_child_order(combination, expected):
    values = {"a": 4, "b": 17, "c": 9}
    forward = Dice(dice=(d("a", "D20"), d("b", "D20"), d("c", "D20")), combination=combination, bonus=2)
    backward = Dice(dice=(d("c", "D20"), d("b", "D20"), d("a", "D20")), combination=combination, bonus=2)
    assert get_combined_dice_value(forward, values) == expected
    assert get_combined_dice_value(backward, values) == expected


@pytest.mark.parametrize(("bonus", "expected"), [(None, None), (0, 0), (4, 4)])
def test_none_combination_only_counts_the_bonus(bonus, expected):
    dice = Dice(dice=(d("a"), d("b")), combination="NONE", bonus=bonus)
    assert get_combined_dice_value(dice, {"a": 6, "b": 6}) == expected


def test_ten_sided_zero_counts_as_ten():
    values = {"a": 0, "b": 3}
    assert get_combined_dice_value(Dice(dice=(d("a", "D10"), d("b", "D10"))), values) == 13
    assert get_combined_dice_value(
        Dice(dice=(d("a", "D10"), d("b", "D10")), combination="HIGHEST"), values
    ) == 10
    assert get_combined_dice_value(
        Dice(dice=(d("a", "D10"), d("b", "D10")), combination="LOWEST"), values
    ) == 3


def test_other_die_zero_counts_as_zero():
    dice = Dice(dice=(d("a", "D6"), d("b", "D100")), combination="LOWEST")
    assert get_combined_dice_value(dice, {"a": 0, "b": 40}) == 0


def test_unresolved_dice_are_skipped():
    dice = Dice(dice=(d("a"), d("b"), d("c")), combination="LOWEST")
    assert get_combined_dice_value(dice, {"b": 5, "c": 3}) == 3


@pytest.mark.parametrize(("bonus", "expected"), [(None, None), (0, 0), (2, 2)])
def test_nothing_resolved_yields_bonus_or_pending(bonus, expected):
    dice = Dice(dice=(d("a"), d("b")), bonus=bonus)
    assert get_combined_dice_value(dice, {}) == expected


def test_empty_group_is_pending():
    assert get_combined_dice_value(Dice(dice=()), {}) is None


def test_nested_group_contributes_a_single_value():
    advantage = Dice(dice=(d("a", "D20"), d("b", "D20")), combination="HIGHEST")
    dice = Dice(dice=(advantage, d("c", "D4")), bonus=1)
    assert get_combined_dice_value(dice, {"a": 7, "b": 15, "c": 2}) == 18


def test_nesting_recurses_to_any_depth():
    inner = Dice(dice=(d("a"), d("b")), bonus=1)
    middle = Dice(dice=(inner, d("c")), combination="HIGHEST")
    outer = Dice(dice=(middle, Dice(dice=(d("d", "D10"),))), bonus=10)
    # inner = 3 + 4 + 1 = 8; middle = max(8, 6) = 8; outer = 8 + 10 + 10
    assert get_combined_dice_value(outer, {"a": 3, "b": 4, "c": 6, "d": 0}) == 28


def test_pending_nested_group_is_skipped():
    inner = Dice(dice=(d("a"), d("b")))
    dice = Dice(dice=(inner, d("c")), combination="LOWEST")
    assert get_combined_dice_value(dice, {"c": 5}) == 5


def test_unrecognised_nodes_are_skipped():
    dice = Dice(dice=(d("a"), {"id": "b", "type": "D6"}, "junk"))
    assert get_combined_dice_value(dice, {"a": 4, "b": 6}) == 4


def test_inputs_are_not_mutated():
    dice = Dice(dice=(d("a", "D10"), d("b")), bonus=1)
    values = {"a": 0, "b": 2}
    get_combined_dice_value(dice, values)
    assert values == {"a": 0, "b": 2}
    assert dice == Dice(dice=(d("a", "D10"), d("b")), bonus=1)


def test_evaluate_dispatches_by_mode():
    dice = Dice(dice=(d("a", "D8"), d("b", "D8")))
    values = {"a": 8, "b": 6}
    assert evaluate(dice, values) == 14
    assert evaluate(dice, values, "fbl_success") == 3
    assert evaluate(dice, values, "fbl_fail") is None


def test_evaluate_rejects_unknown_mode():
    with pytest.raises(DiceError) as exc:
        evaluate(Dice(dice=()), {}, "poker")
    assert str(exc.value).startswith("[INVALID_MODE]")
