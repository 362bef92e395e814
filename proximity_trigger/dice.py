"""Dice expression evaluation.

Supports compound expressions such as ``1d6``, ``2d20+3``, ``1d8+2d6`` and
``(2d6+1)*2``. Each ``<count>d<sides>`` term is rolled, its sum substituted
back into the expression, and the remaining arithmetic evaluated with a small
recursive-descent parser:

    expr   := term (("+" | "-") term)*
    term   := factor (("*" | "/") factor)*
    factor := ("+" | "-") factor | number | "(" expr ")"

Parentheses and unary signs may nest at most MAX_NESTING levels deep.

Invalid input never raises out of this module: it produces a RollResult with
success=False and the original expression, so the caller can show an
"invalid roll" marker.
"""

import logging
import math
import random
import re

from proximity_trigger.models import RollResult

logger = logging.getLogger(__name__)

DICE_TERM = re.compile(r"(\d+)d(\d+)", re.IGNORECASE)
ARITHMETIC_ONLY = re.compile(r"^[\d+\-*/().\s]+$")

MAX_DICE = 100
MAX_SIDES = 1000
MAX_NESTING = 64

_TOKEN = re.compile(r"\s*(?:(\d+\.?\d*|\.\d+)|(\S))")


class DiceExpressionError(ValueError):
    """Raised internally when a dice or arithmetic expression cannot be evaluated."""


def has_dice_term(text: str) -> bool:
    return DICE_TERM.search(text) is not None


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


# ── Arithmetic ───────────────────────────────────────────


class _ArithmeticParser:
    def __init__(self, text: str) -> None:
        self._tokens: list[tuple[str, str]] = []
        pos = 0
        text = text.rstrip()
        while pos < len(text):
            match = _TOKEN.match(text, pos)
            if not match:
                raise DiceExpressionError(f"Unexpected input at {pos}: {text[pos:]!r}")
            number, symbol = match.groups()
            if number is not None:
                self._tokens.append(("num", number))
            else:
                self._tokens.append(("op", symbol))
            pos = match.end()
        self._pos = 0
        self._depth = 0

    def _peek(self) -> tuple[str, str] | None:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _take(self) -> tuple[str, str]:
        token = self._peek()
        if token is None:
            raise DiceExpressionError("Unexpected end of expression")
        self._pos += 1
        return token

    def parse(self) -> float:
        if not self._tokens:
            raise DiceExpressionError("Empty expression")
        value = self._expr()
        if self._peek() is not None:
            raise DiceExpressionError(f"Unexpected token {self._peek()[1]!r}")
        return value

    def _expr(self) -> float:
        value = self._term()
        while (token := self._peek()) is not None and token[1] in ("+", "-"):
            self._take()
            right = self._term()
            value = value + right if token[1] == "+" else value - right
        return value

    def _term(self) -> float:
        value = self._factor()
        while (token := self._peek()) is not None and token[1] in ("*", "/"):
            self._take()
            right = self._factor()
            if token[1] == "*":
                value = value * right
            else:
                if right == 0:
                    raise DiceExpressionError("Division by zero")
                value = value / right
        return value

    def _factor(self) -> float:
        kind, text = self._take()
        if kind == "num":
            return float(text)
        if text not in ("-", "+", "("):
            raise DiceExpressionError(f"Unexpected token {text!r}")

        self._depth += 1
        if self._depth > MAX_NESTING:
            raise DiceExpressionError(f"Nested deeper than {MAX_NESTING} levels")
        try:
            if text == "-":
                return -self._factor()
            if text == "+":
                return self._factor()
            value = self._expr()
            _, closing = self._take()
            if closing != ")":
                raise DiceExpressionError(f"Expected ')' but found {closing!r}")
            return value
        finally:
            self._depth -= 1


def evaluate_arithmetic(text: str) -> float:
    """Evaluate a pure arithmetic expression (numbers, + - * /, parentheses)."""
    return _ArithmeticParser(text).parse()


# ── Dice ─────────────────────────────────────────────────


class DiceRoller:
    """Rolls dice expressions using an injectable random source.

    rng only needs a ``randint(a, b)`` method, so tests can pass a stub that
    returns scripted draws.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()

    def roll(self, expression: str) -> RollResult:
        try:
            total, details = self._evaluate(expression)
        except DiceExpressionError as e:
            logger.warning("Invalid dice roll %r: %s", expression, e)
            return RollResult(total=0, expression=expression, details="", success=False)
        return RollResult(total=total, expression=expression, details=details, success=True)

    def _evaluate(self, expression: str) -> tuple[int, str]:
        expr = re.sub(r"\s+", "", expression)
        terms = list(DICE_TERM.finditer(expr))

        for term in terms:
            count, sides = int(term.group(1)), int(term.group(2))
            if count <= 0 or count > MAX_DICE or sides <= 0 or sides > MAX_SIDES:
                raise DiceExpressionError(f"Dice term {term.group(0)} out of bounds")

        substituted: list[str] = []
        detail_parts: list[str] = []
        last = 0
        for term in terms:
            count, sides = int(term.group(1)), int(term.group(2))
            rolls = [self.rng.randint(1, sides) for _ in range(count)]

            literal = expr[last:term.start()]
            substituted.append(literal)
            detail_parts.append(literal)

            substituted.append(str(sum(rolls)))
            detail_parts.append(f"{count}d{sides}=[{','.join(str(r) for r in rolls)}]")
            last = term.end()
        substituted.append(expr[last:])
        detail_parts.append(expr[last:])

        working = "".join(substituted)
        if not ARITHMETIC_ONLY.match(working):
            raise DiceExpressionError(f"Non-arithmetic characters in {working!r}")

        return round_half_up(evaluate_arithmetic(working)), "".join(detail_parts)


def roll_expression(expression: str, rng: random.Random | None = None) -> RollResult:
    """Convenience wrapper: roll one expression with a throwaway DiceRoller."""
    return DiceRoller(rng).roll(expression)
