"""sdb-expr CLI — evaluate debugger expressions against a guest image.

Usage:
    sdb-expr "1+2*3"                           Plain arithmetic
    sdb-expr --reg sp=0x80001000 '$sp + 8'     Register values
    sdb-expr --image prog.bin '*0x80000000'    Read a word from the image
    echo '$a0 == 0' | sdb-expr                 One expression per stdin line

Results print as decimal and hex, the same layout as the monitor's ``p``.
"""

import argparse
import sys

from .errors import ExprError
from .evaluator import EvalOptions, expr
from .machine import RegisterFile, PhysicalMemory, MEM_BASE, MEM_SIZE


def _parse_int(text):
    """argparse type: accept 123, 0x7b, 0o173 or 0b1111011."""
    try:
        return int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}")


def _parse_reg(text):
    """argparse type: NAME=VALUE."""
    name, sep, value = text.partition('=')
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got {text!r}")
    return name.strip(), _parse_int(value.strip())


def _trace_printer(index, rule, position, matched):
    """Verbose callback: one line per rule match, to stderr."""
    print(f"  match rules[{index}] = \"{rule.pattern}\" at position "
          f"{position} with len {len(matched)}: {matched}", file=sys.stderr)


def _fmt_word(value, xlen):
    digits = xlen // 4
    return f"{value} (0x{value:0{digits}x})"


def build_machine(args):
    """Create register file and memory from parsed arguments."""
    regs = RegisterFile(args.xlen, pc=args.base)
    for name, value in args.reg:
        try:
            regs.set(name, value)
        except KeyError as e:
            raise ExprError(e.args[0]) from e

    mem = PhysicalMemory(args.mem_size, args.base)
    if args.image:
        with open(args.image, 'rb') as f:
            image = f.read()
        try:
            n = mem.load(image)
        except ValueError as e:
            raise ExprError(str(e)) from e
        if args.verbose:
            print(f"Loaded {args.image}: {n:,} bytes at 0x{args.base:08x}",
                  file=sys.stderr)
    return regs, mem


def main(argv=None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog='sdb-expr',
        description='Evaluate debugger expressions (registers, memory, arithmetic).',
        epilog="""Examples:
  sdb-expr "(1+2)*3"                     9
  sdb-expr --reg a0=5 '$a0 * 2'          10
  sdb-expr --image fw.bin '*0x80000000'  first word of the image
  sdb-expr --info-regs --reg sp=0x1000   register dump""")

    parser.add_argument('exprs', nargs='*', metavar='EXPR',
                        help='Expression(s) to evaluate (default: read stdin)')
    parser.add_argument('--xlen', type=int, choices=[32, 64], default=32,
                        help='Machine word width in bits (default: 32)')
    parser.add_argument('--image', default=None, metavar='FILE',
                        help='Raw binary image loaded at --base')
    parser.add_argument('--base', type=_parse_int, default=MEM_BASE, metavar='ADDR',
                        help=f'Physical memory base (default: 0x{MEM_BASE:08x})')
    parser.add_argument('--mem-size', type=_parse_int, default=MEM_SIZE, metavar='BYTES',
                        help=f'Physical memory size (default: 0x{MEM_SIZE:x})')
    parser.add_argument('--reg', type=_parse_reg, action='append', default=[],
                        metavar='NAME=VALUE',
                        help='Set a register before evaluating (repeatable)')
    parser.add_argument('--lenient-registers', action='store_true',
                        help='Unknown registers read as 0 instead of failing')
    parser.add_argument('--info-regs', action='store_true',
                        help='Print the register file and exit')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Trace every lexical rule match')

    args = parser.parse_args(argv)

    if args.mem_size <= 0:
        parser.error(f"--mem-size must be positive, got {args.mem_size}")

    try:
        return run(args)
    except ExprError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        return 130


def run(args):
    regs, mem = build_machine(args)

    if args.info_regs:
        for name, value in regs.dump():
            print(f"{name:<4} {_fmt_word(value, args.xlen)}")
        return 0

    options = EvalOptions(xlen=args.xlen,
                          strict_registers=not args.lenient_registers)
    trace = _trace_printer if args.verbose else None

    if args.exprs:
        lines = args.exprs
    else:
        lines = (line.rstrip('\r\n') for line in sys.stdin)

    status = 0
    for text in lines:
        if not text.strip():
            continue
        result = expr(text, regs, mem, options, trace=trace)
        if result.ok:
            print(_fmt_word(result.value, args.xlen))
        else:
            print(f"Error: {text}: {result.error}", file=sys.stderr)
            status = 1
    return status
