"""
Filter expressions and the typed constraints they parse into.

An expression is either a keyword (``png``, ``rgba``, ``invalid``) or a
comparison (``filesize>10.5M``, ``short<512``). A leading ``!`` negates it.
Everything is validated here, once, before any file is touched.
"""
import logging
import operator
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, ClassVar, Dict, Iterable, Optional, Tuple

from .. import config
from ..exceptions import ConstraintSpecError
from ..models import Metadata, Stage

OPERATORS: Dict[str, Callable[[int, int], bool]] = {
    '==': operator.eq,
    '>': operator.gt,
    '>=': operator.ge,
    '<': operator.lt,
    '<=': operator.le,
}

COMPARISON_RE = re.compile(
    r"^(?P<field>[a-z]+)(?P<op>[<>=!]+)(?P<num>\d+(?:\.\d+)?)(?P<unit>[a-z]*)$"
)


class Constraint:
    """
    One filter term. Subclasses pull a value out of Metadata (`_observe`)
    and test it (`_test`).

    A value that was never observed (e.g. width of an undecodable file)
    fails the constraint whether or not it is negated.
    """
    stage: ClassVar[Stage] = Stage.PATH
    negate: bool

    def matches(self, meta: Metadata) -> bool:
        value = self._observe(meta)
        if value is None:
            return False
        return self._test(value) != self.negate

    def describe(self) -> str:
        return ("!" if self.negate else "") + self._describe()

    def _observe(self, meta: Metadata) -> Any:
        raise NotImplementedError

    def _test(self, value: Any) -> bool:
        raise NotImplementedError

    def _describe(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class SizeConstraint(Constraint):
    op: str
    value: int              # bytes
    negate: bool = False

    stage: ClassVar[Stage] = Stage.STAT

    def _observe(self, meta: Metadata) -> Optional[int]:
        return meta.size_bytes

    def _test(self, value: int) -> bool:
        return OPERATORS[self.op](value, self.value)

    def _describe(self) -> str:
        return f"filesize{self.op}{self.value}B"


@dataclass(frozen=True)
class DimensionConstraint(Constraint):
    field: str              # width/height/long/short
    op: str
    value: int
    negate: bool = False

    stage: ClassVar[Stage] = Stage.HEADER

    def _observe(self, meta: Metadata) -> Optional[int]:
        if self.field == 'long':
            return meta.long_edge
        if self.field == 'short':
            return meta.short_edge
        return getattr(meta, self.field)

    def _test(self, value: int) -> bool:
        return OPERATORS[self.op](value, self.value)

    def _describe(self) -> str:
        return f"{self.field}{self.op}{self.value}"


@dataclass(frozen=True)
class FormatConstraint(Constraint):
    fmt: str                # key of config.FORMAT_EXTS
    negate: bool = False

    stage: ClassVar[Stage] = Stage.PATH

    def _observe(self, meta: Metadata) -> str:
        return meta.path.suffix.lower()

    def _test(self, value: str) -> bool:
        return value in config.FORMAT_EXTS[self.fmt]

    def _describe(self) -> str:
        return self.fmt


@dataclass(frozen=True)
class ChannelConstraint(Constraint):
    layout: str             # key of config.CHANNEL_MODES
    negate: bool = False

    stage: ClassVar[Stage] = Stage.HEADER

    def _observe(self, meta: Metadata) -> Optional[str]:
        return meta.mode

    def _test(self, value: str) -> bool:
        return value == config.CHANNEL_MODES[self.layout]

    def _describe(self) -> str:
        return self.layout


@dataclass(frozen=True)
class ValidityConstraint(Constraint):
    valid: bool
    negate: bool = False

    stage: ClassVar[Stage] = Stage.CONTENT

    def _observe(self, meta: Metadata) -> bool:
        return meta.decode_error is None

    def _test(self, value: bool) -> bool:
        return value == self.valid

    def _describe(self) -> str:
        return "valid" if self.valid else "invalid"


@dataclass(frozen=True)
class RejectAll(Constraint):
    """Placeholder for an expression that failed to parse in lenient mode."""
    expression: str
    reason: str
    negate: bool = False

    stage: ClassVar[Stage] = Stage.PATH

    def matches(self, meta: Metadata) -> bool:
        return False

    def _describe(self) -> str:
        return f"<rejected {self.expression!r}>"


@dataclass(frozen=True)
class FilterSet:
    """
    Immutable conjunction of constraints. Empty matches everything.
    """
    constraints: Tuple[Constraint, ...] = ()

    @property
    def stage(self) -> Optional[Stage]:
        """Deepest stage any constraint needs, or None for an empty set."""
        if not self.constraints:
            return None
        return max(c.stage for c in self.constraints)

    def needs(self, stage: Stage) -> bool:
        return any(c.stage == stage for c in self.constraints)

    def at_stage(self, stage: Stage) -> Tuple[Constraint, ...]:
        return tuple(c for c in self.constraints if c.stage == stage)

    def describe(self) -> str:
        if not self.constraints:
            return "(none)"
        return " ".join(c.describe() for c in self.constraints)

    def __len__(self) -> int:
        return len(self.constraints)


def parse_constraint(expression: str) -> Constraint:
    """
    Parses a single filter expression.

    Raises:
        ConstraintSpecError: unknown keyword, field, operator or unit.
    """
    text = expression.strip()
    negate = text.startswith('!')
    if negate:
        text = text[1:]
    low = text.lower()

    if not low:
        raise ConstraintSpecError(expression, "empty expression")

    # 1. Keywords
    if low in config.VALIDITY_KEYWORDS:
        return ValidityConstraint(config.VALIDITY_KEYWORDS[low], negate=negate)

    layout = config.CHANNEL_ALIASES.get(low, low)
    if layout in config.CHANNEL_MODES:
        return ChannelConstraint(layout, negate=negate)

    fmt = config.FORMAT_ALIASES.get(low, low)
    if fmt in config.FORMAT_EXTS:
        return FormatConstraint(fmt, negate=negate)

    # 2. Comparisons
    m = COMPARISON_RE.match(low)
    if not m:
        raise ConstraintSpecError(expression, "not a known keyword or <field><op><number> comparison")

    field, op, num, unit = m.group('field', 'op', 'num', 'unit')
    if op not in OPERATORS:
        raise ConstraintSpecError(expression, f"unsupported operator '{op}' (use one of {', '.join(OPERATORS)})")

    if field in config.SIZE_FIELDS:
        if unit not in config.SIZE_UNITS:
            raise ConstraintSpecError(expression, f"unknown size unit '{unit}'")
        return SizeConstraint(op, int(Decimal(num) * config.SIZE_UNITS[unit]), negate=negate)

    if field in config.DIMENSION_FIELDS:
        if unit:
            raise ConstraintSpecError(expression, "dimensions take no unit")
        if '.' in num:
            raise ConstraintSpecError(expression, "dimensions must be whole numbers")
        return DimensionConstraint(field, op, int(num), negate=negate)

    raise ConstraintSpecError(expression, f"unknown field '{field}'")


def parse_filters(expressions: Iterable[str], strict: bool = True) -> FilterSet:
    """
    Parses every expression up front.

    Args:
        strict: Raise on the first malformed expression. When False, a
                malformed expression is logged once here and becomes a
                RejectAll, so the whole filter set matches nothing.
    """
    constraints = []
    for expr in expressions:
        try:
            constraints.append(parse_constraint(expr))
        except ConstraintSpecError as e:
            if strict:
                raise
            logging.warning(f"{e}; no file will match")
            constraints.append(RejectAll(expr, e.reason))
    return FilterSet(tuple(constraints))
