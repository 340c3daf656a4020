"""sdb-expr: expression evaluator for a virtual machine debugging console.

Supports:
  - Decimal and hex (0x1F) literals
  - Register references ($0, $ra, $sp, $t0-$t6, $s0-$s11, $a0-$a7)
  - Arithmetic: + - * /  (with parentheses)
  - Comparison == != and logic && ||
  - Unary - (negate) and * (read one machine word from guest memory)

Pipeline:
  1. Tokenize with an ordered rule table (first matching rule wins)
  2. Reclassify unary * and - from the preceding token
  3. Evaluate token ranges recursively, splitting on the main operator

Usage as library:
    from sdb_expr import expr, RegisterFile, PhysicalMemory
    value, ok = expr('$sp + 4', RegisterFile(), PhysicalMemory())
"""

__version__ = '1.0.0'

from .errors import (ExprError, RuleError, LexError, EmptyOperand,
                     InvalidOperand, BadExpression, UnresolvedRegister,
                     DivisionByZero, UnreadableAddress, NestingTooDeep)
from .rules import RULES, compile_rules
from .tokenizer import Token, tokenize, disambiguate
from .evaluator import EvalOptions, Evaluator, ExprResult, evaluate, expr
from .machine import RegisterFile, PhysicalMemory
