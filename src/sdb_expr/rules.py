"""Lexical rule table.

The table is an ordered list of ``(pattern, kind)`` pairs.  Order is the
priority: at a scan position the first rule whose pattern matches exactly
there wins, whatever length a later rule might have matched.  Multi-character
operators therefore sit ahead of anything that could claim their prefix.

Patterns are compiled once, when this module is imported, and the compiled
table is shared read-only by every evaluation.
"""

import re

from .errors import RuleError


# ── Token kinds ──────────────────────────────────────────────────────

SKIP = 'skip'
NUM = 'num'
HEX = 'hex'
REG = 'reg'
PLUS = '+'
MINUS = '-'
MUL = '*'
DIV = '/'
EQ = '=='
NEQ = '!='
AND = '&&'
OR = '||'
LPAREN = '('
RPAREN = ')'
DEREF = 'deref'    # unary *, assigned by disambiguation
NEG = 'neg'        # unary -, assigned by disambiguation

UNARY = frozenset((DEREF, NEG))

# Registers reachable as $name.  s10/s11 come before s0-s9 so the longer
# name is tried first; the trailing \b rejects $s12, $a8 and friends.
REGISTER_PATTERN = r'\$(?:0|ra|sp|gp|tp|t[0-6]|s1[01]|s[0-9]|a[0-7])\b'


class Rule:
    """One compiled lexical rule."""
    __slots__ = ('pattern', 'kind', 'regex')

    def __init__(self, pattern, kind, regex):
        self.pattern = pattern
        self.kind = kind
        self.regex = regex

    def match(self, text, pos):
        """Return the match anchored at *pos*, or None."""
        return self.regex.match(text, pos)

    def __repr__(self):
        return f"Rule({self.pattern!r}, {self.kind!r})"


RULE_SOURCES = (
    (r' +',                     SKIP),
    (r'\+',                     PLUS),
    (r'-',                      MINUS),
    (r'==',                     EQ),
    (r'!=',                     NEQ),
    (r'&&',                     AND),
    (r'\|\|',                   OR),
    (r'\*',                     MUL),
    (r'/',                      DIV),
    (r'\b[0-9]+\b',             NUM),
    (r'\(',                     LPAREN),
    (r'\)',                     RPAREN),
    (REGISTER_PATTERN,          REG),
    (r'\b0[xX][0-9a-fA-F]+\b',  HEX),
)


def compile_rules(sources=RULE_SOURCES):
    """Compile ``(pattern, kind)`` pairs into a tuple of :class:`Rule`.

    Raises:
        RuleError if any pattern fails to compile.  Callers are expected to
        do this once at startup, never per expression.
    """
    table = []
    for i, (pattern, kind) in enumerate(sources):
        try:
            regex = re.compile(pattern)
        except re.error as e:
            raise RuleError(i, pattern, str(e)) from e
        table.append(Rule(pattern, kind, regex))
    return tuple(table)


RULES = compile_rules()
