"""Recursive range evaluator and the public ``expr`` / ``evaluate`` API.

The evaluator works on closed token ranges ``[p, q]``:

  1. ``p > q``                      → :class:`EmptyOperand`
  2. ``p == q``                     → literal or register value
  3. ``( ... )`` matching pair      → strip, recurse
  4. otherwise split on the *main operator*: the loosest-binding operator at
     paren depth 0.  Among binary operators of equal rank the rightmost wins
     (left associativity); among prefix operators the leftmost wins.

A run of same-rank binary operators (``1+2-3+...``) is folded left to right
in one loop, so recursion depth follows nesting, not length.  Nesting itself
is capped by ``EvalOptions.max_depth``.

All arithmetic is unsigned and wraps at the machine word, like the guest's
own registers.
"""

import sys

from .errors import (ExprError, EmptyOperand, InvalidOperand, BadExpression,
                     UnresolvedRegister, DivisionByZero, UnreadableAddress,
                     NestingTooDeep)
from .rules import (RULES, NUM, HEX, REG, PLUS, MINUS, MUL, DIV, EQ, NEQ,
                    AND, OR, LPAREN, RPAREN, DEREF, NEG, UNARY)
from .tokenizer import tokenize, disambiguate, TOKEN_TEXT_LIMIT

XLEN = 32
WORD_BYTES = XLEN // 8
MAX_DEPTH = 200
DEREF_WIDTHS = (1, 2, 4, 8)

# Lower rank binds looser.
PRECEDENCE = {
    OR: 0,
    AND: 1,
    EQ: 2, NEQ: 2,
    PLUS: 3, MINUS: 3,
    MUL: 4, DIV: 4,
    NEG: 5, DEREF: 5,
}


class EvalOptions:
    """Per-call evaluation settings.

    Attributes:
        xlen: Machine word width in bits (32 or 64).
        deref_width: Bytes read by ``*addr``; defaults to one word.
        token_text_limit: See :func:`tokenizer.tokenize`.
        strict_registers: If False, an unknown register reads as 0 instead
            of raising :class:`UnresolvedRegister`.
        max_depth: Deepest nesting of parentheses and prefix operators
            before :class:`NestingTooDeep`; ``None`` removes the cap.
    """
    __slots__ = ('xlen', 'deref_width', 'token_text_limit', 'strict_registers',
                 'max_depth')

    def __init__(self, xlen=XLEN, deref_width=None,
                 token_text_limit=TOKEN_TEXT_LIMIT, strict_registers=True,
                 max_depth=MAX_DEPTH):
        if xlen not in (32, 64):
            raise ValueError(f"xlen must be 32 or 64, got {xlen}")
        if deref_width is not None and deref_width not in DEREF_WIDTHS:
            raise ValueError(f"deref_width must be 1, 2, 4 or 8, got {deref_width}")
        self.xlen = xlen
        self.deref_width = deref_width or xlen // 8
        self.max_depth = max_depth
        self.token_text_limit = token_text_limit
        self.strict_registers = strict_registers

    @property
    def mask(self):
        return (1 << self.xlen) - 1


def check_parentheses(tokens, p, q):
    """True if tokens p and q are a '(' ... ')' pair enclosing the range."""
    if tokens[p].kind != LPAREN or tokens[q].kind != RPAREN:
        return False
    depth = 0
    for i in range(p + 1, q):
        kind = tokens[i].kind
        if kind == LPAREN:
            depth += 1
        elif kind == RPAREN:
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def main_operator(tokens, p, q):
    """Index of the operator that splits [p, q], or None if there is none.

    The loosest rank at paren depth 0 wins.  Binary ties go to the rightmost
    operator, which makes ``8-3-2`` mean ``(8-3)-2``.  Prefix ties go to the
    leftmost, so ``-*0`` is ``-(*0)``; taking the rightmost there would
    split on the ``*`` and lose the ``-`` in front of it.
    """
    depth = 0
    best = None
    best_rank = None
    for i in range(p, q + 1):
        kind = tokens[i].kind
        if kind == LPAREN:
            depth += 1
            continue
        if kind == RPAREN:
            depth -= 1
            continue
        rank = PRECEDENCE.get(kind)
        if rank is None or depth:
            continue
        if best_rank is None or rank < best_rank:
            best, best_rank = i, rank
        elif rank == best_rank and kind not in UNARY:
            best = i
    return best


def operator_chain(tokens, p, q, rank):
    """Indices of every depth-0 operator of *rank* in [p, q], left to right."""
    depth = 0
    chain = []
    for i in range(p, q + 1):
        kind = tokens[i].kind
        if kind == LPAREN:
            depth += 1
        elif kind == RPAREN:
            depth -= 1
        elif not depth and PRECEDENCE.get(kind) == rank:
            chain.append(i)
    return chain


class Evaluator:
    """Evaluates one disambiguated token list against machine state.

    *registers* must provide ``read_register(name) -> (value, found)`` and
    *memory* ``read_memory(address, width) -> int``; either may be None if
    the expression never needs it.
    """

    def __init__(self, tokens, registers=None, memory=None, options=None):
        self.tokens = tokens
        self.registers = registers
        self.memory = memory
        self.options = options or EvalOptions()
        self.mask = self.options.mask
        self.depth = 0

    def run(self):
        return self.eval(0, len(self.tokens) - 1)

    def eval(self, p, q):
        limit = self.options.max_depth
        if limit is not None and self.depth >= limit:
            raise NestingTooDeep(limit)
        self.depth += 1
        try:
            return self._eval(p, q)
        finally:
            self.depth -= 1

    def _eval(self, p, q):
        if p > q:
            raise EmptyOperand(p, q)

        if p == q:
            return self._value(p)

        if check_parentheses(self.tokens, p, q):
            return self.eval(p + 1, q - 1)

        op = main_operator(self.tokens, p, q)
        if op is None:
            raise BadExpression(p, q)
        kind = self.tokens[op].kind

        if kind in UNARY:
            if op != p:
                raise BadExpression(p, q, f"operand before prefix operator at token {op}")
            val = self.eval(op + 1, q)
            if kind == NEG:
                return -val & self.mask
            return self._read_memory(val)

        # Fold the whole same-rank chain left to right; op is its last link.
        chain = operator_chain(self.tokens, p, q, PRECEDENCE[kind])
        val = self.eval(p, chain[0] - 1)
        for i, at in enumerate(chain):
            end = chain[i + 1] - 1 if i + 1 < len(chain) else q
            rhs = self.eval(at + 1, end)
            val = self._apply(self.tokens[at].kind, val, rhs) & self.mask
        return val

    # ── Leaves ────────────────────────────────────────────────────────

    def _value(self, i):
        tok = self.tokens[i]
        if tok.kind == NUM:
            return int(tok.text, 10) & self.mask
        if tok.kind == HEX:
            return int(tok.text, 16) & self.mask
        if tok.kind == REG:
            return self._read_register(tok.text)
        raise InvalidOperand(tok, i)

    def _read_register(self, name):
        if self.registers is None:
            found = False
        else:
            val, found = self.registers.read_register(name)
        if not found:
            if self.options.strict_registers:
                raise UnresolvedRegister(name)
            return 0
        return val & self.mask

    def _read_memory(self, address):
        if self.memory is None:
            raise UnreadableAddress(address, self.options.deref_width)
        return self.memory.read_memory(address, self.options.deref_width) & self.mask

    @staticmethod
    def _apply(kind, a, b):
        if kind == PLUS:
            return a + b
        if kind == MINUS:
            return a - b
        if kind == MUL:
            return a * b
        if kind == DIV:
            if b == 0:
                raise DivisionByZero()
            return a // b
        if kind == EQ:
            return int(a == b)
        if kind == NEQ:
            return int(a != b)
        if kind == AND:
            return int(bool(a) and bool(b))
        if kind == OR:
            return int(bool(a) or bool(b))
        raise ExprError(f"unknown operator '{kind}'")


# ── Public API ────────────────────────────────────────────────────────

def evaluate(text, registers=None, memory=None, options=None, rules=RULES,
             trace=None):
    """Evaluate an expression string to an unsigned machine word.

    Args:
        text: Expression (e.g. "*($sp + 8) == 0x80000000").
        registers: Object with ``read_register(name) -> (value, found)``.
        memory: Object with ``read_memory(address, width) -> int``.
        options: :class:`EvalOptions`; defaults to a 32-bit machine.
        rules: Compiled rule table.
        trace: Rule-match callback forwarded to :func:`tokenize`.

    Returns:
        int in ``[0, 2**xlen)``.

    Raises:
        ExprError (or a subclass) for every lexical, structural or machine
        access failure.
    """
    options = options or EvalOptions()
    tokens = tokenize(text, rules, options.token_text_limit, trace)
    disambiguate(tokens)
    try:
        return Evaluator(tokens, registers, memory, options).run()
    except RecursionError:
        # Only reachable with max_depth=None.
        raise NestingTooDeep(sys.getrecursionlimit()) from None


class ExprResult:
    """Value plus success flag; unpacks as ``value, ok = expr(...)``."""
    __slots__ = ('value', 'error')

    def __init__(self, value=0, error=None):
        self.value = value
        self.error = error

    @property
    def ok(self):
        return self.error is None

    success = ok

    def __iter__(self):
        yield self.value
        yield self.ok

    def __repr__(self):
        if self.ok:
            return f"ExprResult({self.value})"
        return f"ExprResult(error={self.error!r})"


def expr(text, registers=None, memory=None, options=None, rules=RULES,
         trace=None):
    """Non-raising :func:`evaluate`: every :class:`ExprError` becomes a result."""
    try:
        return ExprResult(evaluate(text, registers, memory, options, rules, trace))
    except ExprError as e:
        return ExprResult(0, e)
