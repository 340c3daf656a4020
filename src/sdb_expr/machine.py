"""Reference machine state: RISC-V register file and physical memory.

The evaluator only needs two read hooks, ``read_register`` and
``read_memory``.  These classes provide them over numpy arrays so the
console and the tests have a small guest to inspect.  Neither read hook
mutates state.
"""

import numpy as np

from .errors import UnreadableAddress

# General-purpose registers in x0..x31 order (ABI names).
REGISTER_NAMES = (
    '$0', 'ra', 'sp', 'gp', 'tp', 't0', 't1', 't2',
    's0', 's1', 'a0', 'a1', 'a2', 'a3', 'a4', 'a5',
    'a6', 'a7', 's2', 's3', 's4', 's5', 's6', 's7',
    's8', 's9', 's10', 's11', 't3', 't4', 't5', 't6',
)

MEM_BASE = 0x80000000
MEM_SIZE = 0x8000000    # 128MB

_DTYPES = {32: np.uint32, 64: np.uint64}


def _register_index(name):
    """Map '$a0', 'a0', '$0' or 'x10' to a register number, or None."""
    if name in REGISTER_NAMES:
        return REGISTER_NAMES.index(name)
    if name.startswith('$'):
        bare = name[1:]
        if bare == '0':
            return 0
        if bare in REGISTER_NAMES:
            return REGISTER_NAMES.index(bare)
        name = bare
    if name.startswith('x') and name[1:].isdigit():
        n = int(name[1:])
        if 0 <= n < len(REGISTER_NAMES):
            return n
    return None


class RegisterFile:
    """32 general-purpose registers plus pc, all *xlen* bits wide."""

    def __init__(self, xlen=32, pc=MEM_BASE):
        if xlen not in _DTYPES:
            raise ValueError(f"xlen must be 32 or 64, got {xlen}")
        self.xlen = xlen
        self.gpr = np.zeros(len(REGISTER_NAMES), dtype=_DTYPES[xlen])
        self.pc = pc

    @property
    def mask(self):
        return (1 << self.xlen) - 1

    def read_register(self, name):
        """Return ``(value, found)`` for a register name."""
        if name in ('pc', '$pc'):
            return self.pc, True
        idx = _register_index(name)
        if idx is None:
            return 0, False
        return int(self.gpr[idx]), True

    def set(self, name, value):
        """Write a register; writes to $0 are discarded."""
        if name in ('pc', '$pc'):
            self.pc = value & self.mask
            return
        idx = _register_index(name)
        if idx is None:
            raise KeyError(f"unknown register '{name}'")
        if idx:
            self.gpr[idx] = value & self.mask

    def dump(self):
        """Return ``[(name, value), ...]`` for every register, pc last."""
        rows = [(name, int(v)) for name, v in zip(REGISTER_NAMES, self.gpr)]
        rows.append(('pc', self.pc))
        return rows


class PhysicalMemory:
    """Byte-addressed little-endian memory window ``[base, base + size)``."""

    def __init__(self, size=MEM_SIZE, base=MEM_BASE):
        self.base = base
        self.size = size
        self.data = np.zeros(size, dtype=np.uint8)

    def in_range(self, address, width=1):
        return self.base <= address and address + width <= self.base + self.size

    def _offset(self, address, width):
        if width not in (1, 2, 4, 8):
            raise ValueError(f"width must be 1, 2, 4 or 8, got {width}")
        if not self.in_range(address, width):
            raise UnreadableAddress(address, width)
        return address - self.base

    def read_memory(self, address, width):
        """Read *width* bytes at *address* as an unsigned little-endian int."""
        off = self._offset(address, width)
        return int.from_bytes(self.data[off:off + width].tobytes(), 'little')

    def write_memory(self, address, width, value):
        off = self._offset(address, width)
        raw = (value & ((1 << (8 * width)) - 1)).to_bytes(width, 'little')
        self.data[off:off + width] = np.frombuffer(raw, dtype=np.uint8)

    def load(self, image, address=None):
        """Copy a raw binary image into memory (default: at base).

        Returns:
            int: Number of bytes loaded.
        """
        if address is None:
            address = self.base
        if not image:
            return 0
        if not self.in_range(address, len(image)):
            raise ValueError(
                f"image of {len(image)} bytes does not fit at 0x{address:08x}")
        off = address - self.base
        self.data[off:off + len(image)] = np.frombuffer(bytes(image), dtype=np.uint8)
        return len(image)
