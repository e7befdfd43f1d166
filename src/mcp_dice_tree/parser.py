from __future__ import annotations

import itertools
import re
from collections.abc import Iterator, Mapping
from typing import Any

from .config import settings
from .errors import DiceError
from .models import (
    ALLOWED_DIE_SIDES,
    COMBINATIONS,
    Combination,
    ConstantTerm,
    Dice,
    Die,
    DieOrDice,
    DieTerm,
    Mode,
    ParsedDiceRequest,
    ParsedTerm,
    is_dice,
)


_FILLER_WORDS = {
    "roll",
    "a",
    "an",
    "the",
    "with",
    "please",
    "and",
    "mod",
    "modifier",
}

_DICE_RE = re.compile(r"^(?P<count>\d*)d(?P<sides>\d+)$")


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


def _load_node(payload: Any, path: str) -> DieOrDice:
    if not isinstance(payload, Mapping):
        raise DiceError(f"[INVALID_NODE] {path} must be an object, got {type(payload).__name__}.")

    if "dice" in payload:
        return _load_group(payload, path)

    die_id = payload.get("id")
    die_type = payload.get("type")
    style = payload.get("style", settings.default_die_style)
    if not isinstance(die_id, str) or not die_id:
        raise DiceError(f"[INVALID_NODE] {path} needs either a 'dice' list or a string 'id'.")
    if not isinstance(die_type, str):
        raise DiceError(f"[INVALID_NODE] {path} needs a string 'type', e.g. 'D20'.")
    if not isinstance(style, str):
        raise DiceError(f"[INVALID_NODE] {path}.style must be a string.")
    return Die(id=die_id, type=die_type, style=style)


def _load_group(payload: Mapping[str, Any], path: str) -> Dice:
    children = payload["dice"]
    if not isinstance(children, list):
        raise DiceError(f"[INVALID_NODE] {path}.dice must be a list.")

    combination = payload.get("combination")
    if combination is not None and combination not in COMBINATIONS:
        raise DiceError(
            f"[INVALID_COMBINATION] {path}.combination must be one of {', '.join(COMBINATIONS)}, got {combination!r}."
        )

    bonus = payload.get("bonus")
    if bonus is not None and (isinstance(bonus, bool) or not isinstance(bonus, int)):
        raise DiceError(f"[INVALID_BONUS] {path}.bonus must be an integer, got {bonus!r}.")

    return Dice(
        dice=tuple(_load_node(child, f"{path}.dice[{i}]") for i, child in enumerate(children)),
        combination=combination,
        bonus=bonus,
    )


def load_dice(payload: Any) -> Dice:
    """Build a dice tree from its JSON shape. Raises DiceError for malformed payloads."""
    node = _load_node(payload, "dice")
    if not is_dice(node):
        raise DiceError("[INVALID_NODE] The root of a roll must be a group with a 'dice' list.")
    return node


def dump_dice(dice: Dice) -> dict[str, Any]:
    out: dict[str, Any] = {"dice": [_dump_node(node) for node in dice.dice]}
    if dice.combination is not None:
        out["combination"] = dice.combination
    if dice.bonus is not None:
        out["bonus"] = dice.bonus
    return out


def _dump_node(node: DieOrDice) -> dict[str, Any]:
    if is_dice(node):
        return dump_dice(node)
    return {"id": node.id, "type": node.type, "style": node.style}


def load_values(payload: Any) -> dict[str, int]:
    if not isinstance(payload, Mapping):
        raise DiceError("[INVALID_VALUE] Values must be an object mapping die ids to rolled values.")

    values: dict[str, int] = {}
    for die_id, value in payload.items():
        if not isinstance(die_id, str):
            raise DiceError(f"[INVALID_VALUE] Die id {die_id!r} must be a string.")
        if isinstance(value, bool) or not isinstance(value, int):
            raise DiceError(f"[INVALID_VALUE] Value for '{die_id}' must be an integer, got {value!r}.")
        values[die_id] = value
    return values


# ---------------------------------------------------------------------------
# Notation
# ---------------------------------------------------------------------------


def normalize_text(text: str) -> str:
    s = text.strip().lower()

    # Convert word-operators into symbolic ones.
    s = re.sub(r"\bplus\b", "+", s)
    s = re.sub(r"\bminus\b", "-", s)

    # Replace most punctuation with spaces, but keep + - and alphanumerics.
    s = re.sub(r"[^a-z0-9+\-\s]", " ", s)

    # Ensure + / - are tokenized.
    s = re.sub(r"([+-])", r" \1 ", s)

    # Collapse whitespace.
    s = re.sub(r"\s+", " ", s).strip()
    return s


def _detect_mode(text: str) -> Mode:
    has_adv = re.search(r"\badvantage\b", text) is not None
    has_dis = re.search(r"\bdisadvantage\b", text) is not None
    if has_adv and has_dis:
        raise DiceError(
            "[UNPARSEABLE_INPUT] Found both 'advantage' and 'disadvantage'. Use only one. Example: 'd20 with advantage +3'."
        )
    if has_adv:
        return "advantage"
    if has_dis:
        return "disadvantage"
    return "none"


def _reject_out_of_scope_syntax(raw_text: str) -> None:
    if any(op in raw_text for op in ("*", "/", "(", ")")):
        raise DiceError(
            "[OUT_OF_SCOPE_SYNTAX] Only + and - are supported (no *, /, or parentheses). Example: '2d10 + 2d4 + 4'."
        )


def _build_normalized_expression(terms: list[ParsedTerm]) -> str:
    chunks: list[str] = []

    for term in terms:
        if isinstance(term, DieTerm):
            if term.mode == "normal":
                chunk = f"{term.count}d{term.sides}" if term.count != 1 else f"d{term.sides}"
            else:
                chunk = "d20(adv)" if term.mode == "advantage" else "d20(disadv)"
            chunks.append(chunk if not chunks else f"+ {chunk}")
        elif term.value >= 0:
            chunks.append(str(term.value) if not chunks else f"+ {term.value}")
        else:
            chunks.append(f"- {abs(term.value)}")

    expr = " ".join(chunks).strip()
    return re.sub(r"\s+", " ", expr)


def _build_tree(terms: list[ParsedTerm], style: str) -> Dice:
    ids: Iterator[int] = itertools.count(1)

    def new_die(sides: int) -> Die:
        return Die(id=f"die-{next(ids)}", type=f"D{sides}", style=style)

    def single(sides: int) -> DieOrDice:
        # A d100 is read as a tens die paired with a units die.
        if sides == 100:
            return Dice(dice=(new_die(100), new_die(10)))
        return new_die(sides)

    children: list[DieOrDice] = []
    bonus: int | None = None

    for term in terms:
        if isinstance(term, ConstantTerm):
            bonus = (bonus or 0) + term.value
            continue

        if term.mode != "normal":
            combination: Combination = "HIGHEST" if term.mode == "advantage" else "LOWEST"
            children.append(Dice(dice=(new_die(20), new_die(20)), combination=combination))
        elif term.count == 1:
            children.append(single(term.sides))
        else:
            children.append(Dice(dice=tuple(single(term.sides) for _ in range(term.count))))

    return Dice(dice=tuple(children), bonus=bonus)


def parse_notation(text: str, style: str | None = None) -> ParsedDiceRequest:
    """Parse a natural-language roll request into a dice tree.

    Die ids are assigned in reading order, so the same text always yields
    the same tree. Raises DiceError for anything outside the supported syntax.
    """
    if not text or not text.strip():
        raise DiceError(
            "[UNPARSEABLE_INPUT] Empty input. Example: '2d6 + 3' or 'd20 with advantage +5'."
        )

    # Reject out-of-scope syntax BEFORE normalization, so parentheses are still visible.
    _reject_out_of_scope_syntax(text)

    normalized = normalize_text(text)
    mode = _detect_mode(normalized)

    tokens = [t for t in normalized.split(" ") if t and t not in _FILLER_WORDS]

    terms: list[ParsedTerm] = []
    sign: int = 1

    for tok in tokens:
        if tok == "+":
            sign = 1
            continue
        if tok == "-":
            sign = -1
            continue

        m = _DICE_RE.match(tok)
        if m:
            count_str = m.group("count")
            count = int(count_str) if count_str else 1
            sides = int(m.group("sides"))

            if sides not in ALLOWED_DIE_SIDES:
                raise DiceError(
                    "[INVALID_DIE] Only d4,d6,d8,d10,d12,d20,d100 are supported. Example: '2d10 + 2d4 + 4'."
                )
            if count <= 0:
                raise DiceError(
                    "[UNPARSEABLE_INPUT] Dice count must be a positive integer. Example: '2d6 + 3'."
                )
            if sign == -1:
                raise DiceError(
                    "[OUT_OF_SCOPE_SYNTAX] Subtracting dice terms is not supported. Example: 'd20 - 1'."
                )

            terms.append(DieTerm(count=count, sides=sides))
            sign = 1
            continue

        if tok.isdigit():
            terms.append(ConstantTerm(value=sign * int(tok)))
            sign = 1
            continue

        if tok in {"advantage", "disadvantage"}:
            continue

        raise DiceError(
            f"[UNPARSEABLE_INPUT] Could not understand token '{tok}'. Example: '2d6 + 3' or 'd20 with advantage +5'."
        )

    if mode != "none":
        d20_terms = [t for t in terms if isinstance(t, DieTerm) and t.sides == 20]
        if len(d20_terms) != 1 or d20_terms[0].count != 1:
            raise DiceError(
                "[INVALID_ADVANTAGE_USAGE] Advantage/disadvantage requires exactly one 'd20' (or '1d20') term. Example: 'd20 with advantage +3'."
            )

        terms = [
            DieTerm(count=1, sides=20, mode=mode) if isinstance(t, DieTerm) and t.sides == 20 else t
            for t in terms
        ]

    if not terms:
        raise DiceError(
            "[UNPARSEABLE_INPUT] No dice or modifiers found. Example: 'd20' or '2d6 + 3'."
        )

    return ParsedDiceRequest(
        input=text,
        normalized_input=normalized,
        mode=mode,
        dice=_build_tree(terms, style or settings.default_die_style),
        normalized_expression=_build_normalized_expression(terms),
    )
