"""Tokenizer and operator disambiguation.

``tokenize`` scans left to right trying rules in table order;
``disambiguate`` then reclassifies ``*`` and ``-`` by looking only at the
token immediately before each one.
"""

from .errors import LexError
from .rules import (RULES, SKIP, NUM, HEX, REG, PLUS, MINUS, MUL, DIV,
                    LPAREN, RPAREN, DEREF, NEG)

# Matched text longer than this is cut down (None = keep everything).
TOKEN_TEXT_LIMIT = 31


class Token:
    """A classified slice of the input."""
    __slots__ = ('kind', 'text', 'pos')

    def __init__(self, kind, text, pos=0):
        self.kind = kind
        self.text = text
        self.pos = pos

    def __eq__(self, other):
        if not isinstance(other, Token):
            return NotImplemented
        return self.kind == other.kind and self.text == other.text

    def __repr__(self):
        return f"Token({self.kind!r}, {self.text!r})"


def tokenize(text, rules=RULES, limit=TOKEN_TEXT_LIMIT, trace=None):
    """Split *text* into a fresh list of tokens.

    Args:
        text: Expression source.
        rules: Compiled rule table (see :func:`rules.compile_rules`).
        limit: Maximum stored length of a token's text; longer matches are
            truncated.  ``None`` disables the limit.
        trace: Optional ``trace(index, rule, position, matched)`` callback
            fired on every rule match, skipped whitespace included.

    Returns:
        list of :class:`Token`; whitespace never appears in it.

    Raises:
        LexError when no rule matches at some position.
    """
    tokens = []
    pos = 0
    n = len(text)
    while pos < n:
        for i, rule in enumerate(rules):
            m = rule.match(text, pos)
            if m is None or m.end() == pos:
                continue
            matched = m.group(0)
            if trace is not None:
                trace(i, rule, pos, matched)
            if rule.kind != SKIP:
                if limit is not None and len(matched) > limit:
                    matched = matched[:limit]
                tokens.append(Token(rule.kind, matched, pos))
            pos = m.end()
            break
        else:
            raise LexError(pos, text[pos:], text)
    return tokens


# Kinds after which '*' is multiplication rather than dereference.
_MUL_AFTER = frozenset((NUM, HEX, REG, RPAREN))
# Kinds after which '-' is negation rather than subtraction.
_NEG_AFTER = frozenset((LPAREN, DEREF, PLUS, MINUS, MUL, DIV))


def disambiguate(tokens):
    """Reclassify unary ``*`` / ``-`` in place and return *tokens*.

    Each decision uses the already-reclassified previous token, so ``**p``
    yields two dereferences and ``*-1`` a dereference of a negation.
    """
    prev = None
    for tok in tokens:
        if tok.kind == MUL and (prev is None or prev.kind not in _MUL_AFTER):
            tok.kind = DEREF
        elif tok.kind == MINUS and (prev is None or prev.kind in _NEG_AFTER):
            tok.kind = NEG
        prev = tok
    return tokens
