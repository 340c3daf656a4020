"""Error types for sdb-expr.

Every failure an expression can produce derives from :class:`ExprError`,
so callers catch one type at the console boundary.  :class:`RuleError` is
deliberately outside that hierarchy: a broken rule table is a configuration
fault, not a bad expression.
"""


class RuleError(Exception):
    """A lexical rule failed to compile."""

    def __init__(self, index, pattern, reason):
        self.index = index
        self.pattern = pattern
        self.reason = reason
        super().__init__(
            f"rule {index} failed to compile: {reason}\n  pattern: {pattern}")


class ExprError(Exception):
    """Base error for expression evaluation."""
    pass


class LexError(ExprError):
    """No rule matched at a scan position.

    Renders as::

        no match at position 4
          1 + # 2
              ^
    """

    def __init__(self, position, remaining, text=''):
        self.position = position
        self.remaining = remaining
        self.text = text
        lines = [f"no match at position {position}"]
        if text:
            lines.append(f"  {text}")
            lines.append(f"  {' ' * position}^")
        else:
            lines.append(f"  remaining: {remaining!r}")
        super().__init__('\n'.join(lines))


class EmptyOperand(ExprError):
    """An evaluation range became empty (p > q)."""

    def __init__(self, p, q):
        self.p = p
        self.q = q
        super().__init__(f"missing operand at token range {p}-{q}")


class InvalidOperand(ExprError):
    """A single token that cannot stand alone as a value."""

    def __init__(self, token, index=None):
        self.token = token
        self.index = index
        where = f" at token {index}" if index is not None else ''
        super().__init__(f"'{token.text}' is not a value{where}")


class BadExpression(ExprError):
    """A range has no usable main operator (unbalanced or juxtaposed)."""

    def __init__(self, p, q, detail='no operator at top level'):
        self.p = p
        self.q = q
        super().__init__(f"malformed expression at token range {p}-{q}: {detail}")


class UnresolvedRegister(ExprError):
    """A register name did not resolve against the register file."""

    def __init__(self, name):
        self.name = name
        super().__init__(f"unknown register '{name}'")


class DivisionByZero(ExprError):
    """'/' applied with a zero right operand."""

    def __init__(self):
        super().__init__("division by zero")


class UnreadableAddress(ExprError):
    """A dereference targeted unmapped or unreadable memory."""

    def __init__(self, address, width=None):
        self.address = address
        self.width = width
        span = f" ({width} bytes)" if width else ''
        super().__init__(f"address 0x{address:08x}{span} is out of bound")


class NestingTooDeep(ExprError):
    """Parentheses or prefix operators nest deeper than the evaluator allows."""

    def __init__(self, limit):
        self.limit = limit
        super().__init__(f"expression nests deeper than {limit} levels")
