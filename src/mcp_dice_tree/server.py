from __future__ import annotations

import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .config import settings
from .errors import DiceError
from .evaluator import evaluate
from .models import iter_dice
from .parser import dump_dice, load_dice, load_values, parse_notation


logger = logging.getLogger(__name__)

mcp = FastMCP(settings.server_name)


@mcp.tool()
def build_dice(text: str, style: str | None = None):
    """Build a dice tree from a natural-language request.

    Input: text (string), optional die style
    Output: the dice tree plus the ids the roller must resolve

    Raises a hard error (exception) on invalid input.
    """

    try:
        parsed = parse_notation(text, style=style)
    except DiceError as e:
        # Fail-fast: surface stable error codes in the message.
        raise ValueError(str(e)) from None

    logger.info("Built dice tree for %r -> %s", text, parsed.normalized_expression)
    return {
        "input": parsed.input,
        "normalized_expression": parsed.normalized_expression,
        "mode": parsed.mode,
        "dice": dump_dice(parsed.dice),
        "die_ids": [die.id for die in iter_dice(parsed.dice)],
    }


@mcp.tool()
def evaluate_dice(dice: dict[str, Any], values: dict[str, int], mode: str = "standard"):
    """Combine rolled values for a dice tree.

    Input: dice tree, mapping of die id to raw rolled value, and mode
    ("standard", "fbl_success" or "fbl_fail")
    Output: the result, or null with pending=true while nothing has resolved
    """

    try:
        result = evaluate(load_dice(dice), load_values(values), mode)
    except DiceError as e:
        raise ValueError(str(e)) from None

    logger.info("Evaluated %s roll -> %s", mode, result)
    return {
        "mode": mode,
        "result": result,
        "pending": result is None,
    }


def run() -> None:
    # Logs go to stderr; stdout carries the stdio transport.
    logging.basicConfig(level=settings.log_level.upper())
    mcp.run()


if __name__ == "__main__":
    run()
