#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
VMASM: Two-pass assembler for the 64-bit word register VM:
  - Pass 1 strips label declarations, binds labels to word addresses and records instruction starts.
  - Pass 2 encodes every line with the operand rule of its mnemonic.
  - Polymorphic mnemonics (ADD, SUB, MULT, DIV, MOV, CMP, PRINT) pick their private
    immediate opcode when the operand is a value instead of a register.
  - Every jump/call target must be the start of an instruction.
  - Output is a flat stream of signed 64-bit words in the configured byte order.

Source syntax:
    # comment                (only at line start)
    !LABEL MNEMONIC operands  (label names end in an uppercase letter)
    $42                      immediate value
    'c'                      character literal (PRINT only)

"""
version = "1.0.0"

import os
import sys
import time
import argparse
import re
import struct

import logging
from rich.console import Console, Group
from rich import box
from rich.table import Table
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.columns import Columns


COMMENT_PREFIX = "#"
LABEL_PREFIX = "!"
VALUE_PREFIX = "$"

LABEL_RE = re.compile(r"[A-Z]$")
CHAR_RE = re.compile(r"^'(.)'$")
VALUE_RE = re.compile(r"^[+-]?[0-9]+$")
ADDRESS_RE = re.compile(r"^[0-9]+$")

WORD_MIN = -(1 << 63)
WORD_MAX = (1 << 63) - 1

INVALID_ARGUMENTS = "invalid arguments"

console = Console()
logger = logging.getLogger("rich")
g_debug = False


class AsmError(Exception):
    pass

# --------------------------------------------------
# Operand rules / operand kinds
# --------------------------------------------------
class Rule:
    NO_ARG          = "no-arg"          # NOP
    VALUE           = "value"           # PUSH $1
    REGISTER        = "register"        # SHOW R1
    ADDRESS         = "address"         # JMP LABEL | JMP 12
    REG_ADDRESS     = "reg-address"     # JZ R1 LABEL
    REG_VALUE       = "reg-value"       # SET R1 $1
    REG_POLY        = "reg-poly"        # ADD R1 R2 | ADD R1 $2
    PRINT_POLY      = "print-poly"      # PRINT R1 | PRINT 'c'

class OperandKind:
    REGISTER  = "register"
    IMMEDIATE = "immediate"
    CHAR      = "char"
    ADDRESS   = "address"

# --------------------------------------------------
# map (opcode/rule/variant/register)
# --------------------------------------------------
opcode_map = {
    "NOP":    0,
    "PUSH":   1,
    "ADD":    2,
    "ADDV":   3,    # private
    "SUB":    4,
    "SUBV":   5,    # private
    "MULT":   6,
    "MULTV":  7,    # private
    "DIV":    8,
    "DIVV":   9,    # private
    "POP":    10,
    "MOV":    11,
    "MOVV":   12,   # private
    "SHOW":   13,
    "LOAD":   14,
    "STORE":  15,
    "JMP":    16,
    "JZ":     17,
    "JNZ":    18,
    "JE":     19,
    "JNE":    20,
    "JLT":    21,
    "JGT":    22,
    "CMP":    23,
    "CMPV":   24,   # private
    "INC":    25,
    "DEC":    26,
    "PRINT":  27,
    "PRINTV": 28,   # private
    "CALL":   29,
    "RET":    30,
    "STOP":   31,
    "SET":    32,
}
rule_map = {
    "NOP":   Rule.NO_ARG,
    "POP":   Rule.NO_ARG,
    "RET":   Rule.NO_ARG,
    "STOP":  Rule.NO_ARG,
    "PUSH":  Rule.VALUE,
    "SHOW":  Rule.REGISTER,
    "LOAD":  Rule.REGISTER,
    "STORE": Rule.REGISTER,
    "INC":   Rule.REGISTER,
    "DEC":   Rule.REGISTER,
    "JMP":   Rule.ADDRESS,
    "JE":    Rule.ADDRESS,
    "JNE":   Rule.ADDRESS,
    "JLT":   Rule.ADDRESS,
    "JGT":   Rule.ADDRESS,
    "CALL":  Rule.ADDRESS,
    "JZ":    Rule.REG_ADDRESS,
    "JNZ":   Rule.REG_ADDRESS,
    "SET":   Rule.REG_VALUE,
    "ADD":   Rule.REG_POLY,
    "SUB":   Rule.REG_POLY,
    "MULT":  Rule.REG_POLY,
    "DIV":   Rule.REG_POLY,
    "MOV":   Rule.REG_POLY,
    "CMP":   Rule.REG_POLY,
    "PRINT": Rule.PRINT_POLY,
}
variant_map = {     # public mnemonic -> private immediate variant
    "ADD":   "ADDV",
    "SUB":   "SUBV",
    "MULT":  "MULTV",
    "DIV":   "DIVV",
    "MOV":   "MOVV",
    "CMP":   "CMPV",
    "PRINT": "PRINTV",
}
register_map = {
    "R1":  0,
    "R2":  1,
    "R3":  2,
    "R4":  3,
    "R5":  4,
    "R6":  5,
    "R7":  6,
    "R8":  7,
    "R9":  8,
    "R10": 9,
    "R11": 10,
    "R12": 11,
    "R13": 12,
    "R14": 13,
    "R15": 14,
    "R16": 15,
    "Q":   16,  # remainder of DIV
    "Z":   17,  # result of last CMP
}

# --------------------------------------------------
# Instruction Set / Register Table
# --------------------------------------------------
class InstructionSet:
    """
    Immutable mnemonic table.

    - opcodes : every mnemonic (public and private) -> opcode
    - rules   : public mnemonic -> operand rule
    - variants: public mnemonic -> private immediate variant mnemonic

    A mnemonic is public when it has a rule; everything else in opcodes is private.
    """
    def __init__(self, opcodes, rules, variants):
        self._opcodes = dict(opcodes)
        self._rules = dict(rules)
        self._variants = dict(variants)

        seen = {}
        for mnemonic, op in self._opcodes.items():
            if op < 0:
                raise AsmError(f"Opcode of '{mnemonic}' must be non-negative, got {op}")
            if op in seen:
                raise AsmError(f"Opcode {op} shared by '{seen[op]}' and '{mnemonic}'")
            seen[op] = mnemonic
        for mnemonic in self._rules:
            if mnemonic not in self._opcodes:
                raise AsmError(f"Rule given for unknown mnemonic '{mnemonic}'")
        for mnemonic, private in self._variants.items():
            if mnemonic not in self._rules:
                raise AsmError(f"Variant given for non-public mnemonic '{mnemonic}'")
            if private not in self._opcodes or private in self._rules:
                raise AsmError(f"Variant '{private}' of '{mnemonic}' is not a private mnemonic")

    def opcode(self, mnemonic):
        return self._opcodes.get(mnemonic, None)

    def rule(self, mnemonic):
        return self._rules.get(mnemonic, None)

    def is_public(self, mnemonic):
        return mnemonic in self._rules

    def variant(self, mnemonic):
        return self._variants.get(mnemonic, None)

    def select(self, mnemonic, kind):
        """
        pick the opcode for a polymorphic mnemonic from the tagged operand kind.

        return: public opcode for register operands, private variant opcode otherwise
        """
        if kind == OperandKind.REGISTER:
            return self._opcodes[mnemonic]
        return self._opcodes[self._variants[mnemonic]]

    def public_mnemonics(self):
        return [m for m in self._opcodes if m in self._rules]

    def private_mnemonics(self):
        return [m for m in self._opcodes if m not in self._rules]

    def mnemonic_of(self, op):
        for mnemonic, value in self._opcodes.items():
            if value == op:
                return mnemonic
        return None

class RegisterTable:
    def __init__(self, registers):
        self._registers = dict(registers)
        if len(set(self._registers.values())) != len(self._registers):
            raise AsmError("Register indices must be unique")

    def index(self, name):
        return self._registers.get(name, None)

    def names(self):
        return list(self._registers)

    def __contains__(self, name):
        return name in self._registers

    def __len__(self):
        return len(self._registers)

DEFAULT_ISA = InstructionSet(opcode_map, rule_map, variant_map)
DEFAULT_REGISTERS = RegisterTable(register_map)

# --------------------------------------------------
# Pass 1: Line preprocessor
# --------------------------------------------------
class SourceLine:
    def __init__(self, lineno, text, tokens, address=None, label=None):
        self.lineno = lineno      # 1-based line number in the source file
        self.text = text          # label-stripped text
        self.tokens = tokens      # whitespace-separated tokens (empty for blank/comment lines)
        self.address = address    # word address of the instruction or None
        self.label = label        # declared label or None

    @property
    def is_instruction(self):
        return bool(self.tokens)

class Layout:
    """
    Result of pass 1: label-stripped lines, label table and jump points.
    Read-only after preprocess() builds it.
    """
    def __init__(self, lines, labels, jump_points, size):
        self._lines = tuple(lines)
        self._labels = dict(labels)
        self._jump_points = frozenset(jump_points)
        self._size = size
        self._reverse_labels = {}
        for name, addr in self._labels.items():
            self._reverse_labels.setdefault(addr, []).append(name)

    @property
    def lines(self):
        return self._lines

    @property
    def size(self):
        return self._size

    @property
    def jump_points(self):
        return self._jump_points

    def instructions(self):
        return [line for line in self._lines if line.is_instruction]

    def get_label_addr(self, name):
        return self._labels.get(name, None)

    def get_label_names(self, addr):
        return list(self._reverse_labels.get(addr, []))

    def label_items(self):
        return sorted(self._labels.items(), key=lambda kv: (kv[1], kv[0]))

    def is_jump_point(self, addr):
        return addr in self._jump_points

def preprocess(lines, verbose=False):
    """
    Pass 1. Walk every source line once, keeping blank and comment lines so line
    numbers stay 1:1 with the file.

    - "!NAME" as the first token binds NAME to the current word address and is stripped.
    - every line with instruction tokens is a jump point and advances the address by its token count.

    return: Layout
    """
    labels = {}
    jump_points = set()
    source = []
    address = 0

    for idx, raw_line in enumerate(lines, start=1):
        line = raw_line.rstrip("\r\n")

        # blank and comment lines keep their slot but take no address space
        if not line.strip() or line.startswith(COMMENT_PREFIX):
            source.append(SourceLine(idx, line, []))
            continue

        tokens = line.split()
        label = None
        if line.startswith(LABEL_PREFIX):
            label = tokens.pop(0)[len(LABEL_PREFIX):]
            if not label:
                logger.warning(f"line {idx}: empty label declaration ignored.")
                label = None
            else:
                old = labels.get(label, None)
                if old is not None and old != address:
                    logger.warning(f"line {idx}: Label '{escape(label)}' redeclared: old={old}, new={address}. Using the new address.")
                labels[label] = address
                if g_debug:
                    logger.debug(f"line {idx}: Label '{escape(label)}' bound to address {address}")

        if tokens:
            jump_points.add(address)
            source.append(SourceLine(idx, " ".join(tokens), tokens, address, label))
            if g_debug:
                logger.debug(f"line {idx}: '{escape(tokens[0])}' at address {address} ({len(tokens)} words)")
            address += len(tokens)
        else:
            # label-only line: the label points at the next instruction
            source.append(SourceLine(idx, "", [], None, label))

    if verbose:
        logger.info(f"Pass 1: {len(labels)} labels, {len(jump_points)} instructions, {address} words")
    return Layout(source, labels, jump_points, address)

# --------------------------------------------------
# Pass 2: Operand parser / encoder
# --------------------------------------------------
class Failure:
    """Descriptive failure of a parser-level function (not raised)."""
    def __init__(self, message, lineno=None):
        self.message = message
        self.lineno = lineno

    def at(self, lineno):
        return Failure(self.message, lineno)

    def __str__(self):
        if self.lineno is None:
            return self.message
        return f"line {self.lineno}: {self.message}"

    def __repr__(self):
        return f"Failure({self.message!r}, lineno={self.lineno!r})"

class Operand:
    def __init__(self, kind, value):
        self.kind = kind
        self.value = value

class Encoded:
    def __init__(self, words, kind=None, jump_target=None):
        self.words = words              # opcode followed by operand words
        self.kind = kind                # operand kind that picked the opcode (polymorphic rules)
        self.jump_target = jump_target  # address to validate after pass 2, or None

def parse_register(tok, registers):
    index = registers.index(tok)
    if index is None:
        return Failure(f"invalid register: {tok}")
    return Operand(OperandKind.REGISTER, index)

def parse_value(tok):
    """
    parse an immediate value "$<decimal>".

    return: Operand or Failure
    """
    if not tok.startswith(VALUE_PREFIX):
        return Failure(f"malformed value: {tok}")
    digits = tok[len(VALUE_PREFIX):]
    if not VALUE_RE.match(digits):
        return Failure(INVALID_ARGUMENTS)
    value = int(digits, 10)
    if value < WORD_MIN or value > WORD_MAX:
        return Failure(f"value out of range: {tok}")
    return Operand(OperandKind.IMMEDIATE, value)

def parse_char(tok):
    match = CHAR_RE.match(tok)
    if match is None:
        return None
    return Operand(OperandKind.CHAR, ord(match.group(1)))

def parse_address(tok, layout):
    """
    parse a jump/call operand: a label (ends in an uppercase letter) or a literal address.

    return: Operand or Failure
    """
    if LABEL_RE.search(tok):
        addr = layout.get_label_addr(tok)
        if addr is None:
            return Failure(f"undefined label: {tok}")
        return Operand(OperandKind.ADDRESS, addr)
    if not ADDRESS_RE.match(tok):
        return Failure(INVALID_ARGUMENTS)
    addr = int(tok, 10)
    if addr > WORD_MAX:
        return Failure(f"value out of range: {tok}")
    return Operand(OperandKind.ADDRESS, addr)

class Encoder:
    """
    Pass 2. Needs the Layout of pass 1 for label resolution.
    Every encode_* method is pure: tokens in, Encoded or Failure out.
    """
    def __init__(self, layout, isa=DEFAULT_ISA, registers=DEFAULT_REGISTERS):
        self.layout = layout
        self.isa = isa
        self.registers = registers
        self._rules = {
            Rule.NO_ARG:      self.encode_no_arg,
            Rule.VALUE:       self.encode_value,
            Rule.REGISTER:    self.encode_register,
            Rule.ADDRESS:     self.encode_address,
            Rule.REG_ADDRESS: self.encode_reg_address,
            Rule.REG_VALUE:   self.encode_reg_value,
            Rule.REG_POLY:    self.encode_reg_poly,
            Rule.PRINT_POLY:  self.encode_print_poly,
        }

    def encode(self, tokens):
        mnemonic = tokens[0]
        rule = self.isa.rule(mnemonic)
        if rule is None:
            return Failure(f"unknown operation: {mnemonic}")
        return self._rules[rule](mnemonic, tokens[1:])

    def encode_no_arg(self, mnemonic, operands):
        if len(operands) != 0:
            return Failure(INVALID_ARGUMENTS)
        return Encoded([self.isa.opcode(mnemonic)])

    def encode_value(self, mnemonic, operands):
        if len(operands) != 1:
            return Failure(INVALID_ARGUMENTS)
        val = parse_value(operands[0])
        if isinstance(val, Failure):
            return val
        return Encoded([self.isa.opcode(mnemonic), val.value])

    def encode_register(self, mnemonic, operands):
        if len(operands) != 1:
            return Failure(INVALID_ARGUMENTS)
        reg = parse_register(operands[0], self.registers)
        if isinstance(reg, Failure):
            return reg
        return Encoded([self.isa.opcode(mnemonic), reg.value])

    def encode_address(self, mnemonic, operands):
        if len(operands) != 1:
            return Failure(INVALID_ARGUMENTS)
        addr = parse_address(operands[0], self.layout)
        if isinstance(addr, Failure):
            return addr
        return Encoded([self.isa.opcode(mnemonic), addr.value], jump_target=addr.value)

    def encode_reg_address(self, mnemonic, operands):
        if len(operands) != 2:
            return Failure(INVALID_ARGUMENTS)
        reg = parse_register(operands[0], self.registers)
        if isinstance(reg, Failure):
            return reg
        addr = parse_address(operands[1], self.layout)
        if isinstance(addr, Failure):
            return addr
        return Encoded([self.isa.opcode(mnemonic), reg.value, addr.value], jump_target=addr.value)

    def encode_reg_value(self, mnemonic, operands):
        if len(operands) != 2:
            return Failure(INVALID_ARGUMENTS)
        reg = parse_register(operands[0], self.registers)
        if isinstance(reg, Failure):
            return reg
        val = parse_value(operands[1])
        if isinstance(val, Failure):
            return val
        return Encoded([self.isa.opcode(mnemonic), reg.value, val.value])

    def encode_reg_poly(self, mnemonic, operands):
        # ADD R1 R2 -> ADD, ADD R1 $2 -> ADDV
        if len(operands) != 2:
            return Failure(INVALID_ARGUMENTS)
        reg = parse_register(operands[0], self.registers)
        if isinstance(reg, Failure):
            return reg
        if operands[1].startswith(VALUE_PREFIX):
            src = parse_value(operands[1])
        else:
            src = parse_register(operands[1], self.registers)
        if isinstance(src, Failure):
            return src
        return Encoded([self.isa.select(mnemonic, src.kind), reg.value, src.value], kind=src.kind)

    def encode_print_poly(self, mnemonic, operands):
        # PRINT R1 -> PRINT, PRINT 'c' -> PRINTV
        if len(operands) != 1:
            return Failure(INVALID_ARGUMENTS)
        src = parse_char(operands[0])
        if src is None:
            src = parse_register(operands[0], self.registers)
        if isinstance(src, Failure):
            return src
        return Encoded([self.isa.select(mnemonic, src.kind), src.value], kind=src.kind)

    def run(self, verbose=False):
        """
        encode every instruction line of the layout, stopping at the first failure.

        return: Assembly (not yet jump-validated) or Failure with its line number
        """
        words = []
        listing = []
        jump_refs = []
        for line in self.layout.instructions():
            result = self.encode(line.tokens)
            if isinstance(result, Failure):
                return result.at(line.lineno)
            if result.jump_target is not None:
                jump_refs.append((result.jump_target, line.lineno))
            listing.append((line, result))
            words.extend(result.words)
            if g_debug:
                logger.debug(f"line {line.lineno}: {escape(line.text)} -> {result.words}")
        if verbose:
            logger.info(f"Pass 2: encoded {len(listing)} instructions, {len(jump_refs)} jump references")
        return Assembly(self.layout, words, listing, jump_refs)

class Assembly:
    def __init__(self, layout, words, listing, jump_refs):
        self.layout = layout
        self.words = words              # instruction word stream
        self.listing = listing          # [(SourceLine, Encoded)]
        self.jump_refs = jump_refs      # [(address, lineno)]

# --------------------------------------------------
# Jump validator
# --------------------------------------------------
def validate_jumps(layout, jump_refs):
    """
    check that every jump/call target is the start of an instruction.

    return: None if all targets are valid, Failure for the first invalid one.
    """
    for addr, lineno in jump_refs:
        if not layout.is_jump_point(addr):
            return Failure(f"invalid jump address: {addr}", lineno)
    return None

# --------------------------------------------------
# assemble: pass 1 -> pass 2 -> jump validation
# --------------------------------------------------
def assemble(lines, isa=DEFAULT_ISA, registers=DEFAULT_REGISTERS, verbose=False):
    """
    Assemble source lines into a validated word stream.

    return: Assembly, raise AsmError on the first failure.
    """
    layout = preprocess(lines, verbose=verbose)
    result = Encoder(layout, isa, registers).run(verbose=verbose)
    if isinstance(result, Failure):
        raise AsmError(str(result))

    failure = validate_jumps(layout, result.jump_refs)
    if failure is not None:
        raise AsmError(str(failure))

    if len(result.words) != layout.size:
        raise AsmError(f"mismatch encoded words ({len(result.words)}) vs layout size ({layout.size}).")
    if verbose:
        logger.info(f"All {len(result.jump_refs)} jump targets valid.")
    return result

# --------------------------------------------------
# Serializer
# --------------------------------------------------
BYTE_ORDERS = {
    "little": "<",
    "big":    ">",
}

def resolve_byte_order(endian):
    """
    map the configured byte order to 'little' or 'big'. 'native' probes the host.

    return: 'little' or 'big'
    """
    if endian == "native":
        return sys.byteorder
    if endian not in BYTE_ORDERS:
        raise AsmError(f"Unknown byte order '{endian}'. Supported: little, big, native.")
    return endian

def serialize(words, endian="little"):
    """
    pack the word stream as signed 64-bit integers, no header.

    return: bytes
    """
    order = BYTE_ORDERS[resolve_byte_order(endian)]
    try:
        return struct.pack(f"{order}{len(words)}q", *words)
    except struct.error as e:
        raise AsmError(f"Cannot pack word stream: {e}")

def write_words(path, words, endian="little", verbose=False):
    """
    write the serialized word stream to path. The data lands in a temporary file
    next to the destination which then replaces it, so path is never left half written.
    """
    data = serialize(words, endian)
    tmp_path = f"{path}.tmp"
    try:
        with open(tmp_path, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise AsmError(f"Cannot write output file '{path}': {e.strerror or e}")
    if verbose:
        logger.info(f"Wrote binary file => {path}, {len(words)} words, {len(data)} bytes ({resolve_byte_order(endian)} endian)")

# --------------------------------------------------
# Readable listing
# --------------------------------------------------
def format_word(word, fmt="hex"):
    if fmt == "hex":
        return f"{word:#x}"
    elif fmt == "bin":
        return f"{word:#b}"
    return str(word)

def emit_listing(assembly, path, fmt="hex", verbose=False):
    """
    write a human-readable listing: one line per instruction with its address,
    encoded words, source text and the labels bound to its address.
    """
    layout = assembly.layout
    try:
        with open(path, "w", encoding="utf-8") as rf:
            for line, encoded in assembly.listing:
                words_str = " ".join(format_word(w, fmt) for w in encoded.words)
                labels = layout.get_label_names(line.address)
                line_str = f"{line.address:05x} | {words_str:<32} | line {line.lineno}: {line.text}"
                if labels:
                    line_str += f" <- label: {', '.join(labels)}"
                rf.write(line_str + "\n")
    except OSError as e:
        raise AsmError(f"Cannot write readable file '{path}': {e.strerror or e}")
    if verbose:
        logger.info(f"Wrote readable text file => {path}")

# --------------------------------------------------
# Debug tables
# --------------------------------------------------
def build_debug_panel(assembly, isa=DEFAULT_ISA):
    layout = assembly.layout

    labels_table = Table(title="Labels", box=box.MINIMAL_DOUBLE_HEAD)
    labels_table.add_column("Label", style="magenta", no_wrap=True)
    labels_table.add_column("Address", style="yellow")
    for name, addr in layout.label_items():
        labels_table.add_row(escape(name), str(addr))

    jumps_table = Table(title="Jump References", box=box.MINIMAL_DOUBLE_HEAD)
    jumps_table.add_column("Line", style="magenta", no_wrap=True)
    jumps_table.add_column("Target", style="yellow")
    for addr, lineno in assembly.jump_refs:
        jumps_table.add_row(str(lineno), str(addr))

    code_table = Table(title="Instructions", box=box.MINIMAL_DOUBLE_HEAD)
    code_table.add_column("Address", style="yellow", no_wrap=True)
    code_table.add_column("Line", style="magenta")
    code_table.add_column("Opcode", style="cyan")
    code_table.add_column("Words", style="green")
    code_table.add_column("Source", style="white")
    for line, encoded in assembly.listing:
        code_table.add_row(
            str(line.address),
            str(line.lineno),
            isa.mnemonic_of(encoded.words[0]) or "-",
            " ".join(str(w) for w in encoded.words),
            escape(line.text),
        )

    return Panel.fit(Columns([code_table, labels_table, jumps_table]), title="[bold green][DEBUG][/bold green] [bold white]Information[/bold white]", style="bold green", padding=(1, 1))

# --------------------------------------------------
# main
# --------------------------------------------------
def build_parser():
    parser = argparse.ArgumentParser(prog="vmasm", description="VMASM: Two-pass assembler for the 64-bit word register VM")
    parser.add_argument("-i", "--input", required=True,
                        help="Input assembly file path.")
    parser.add_argument("-o", "--output", required=True,
                        help="Output binary file path (signed 64-bit words).")
    parser.add_argument("-e", "--endianess", choices=["little", "big", "native"], default="little",
                        help="Byte order of the output words. 'native' uses the host byte order.")
    parser.add_argument("-r", "--readable", action="store_true",
                        help="Generate a readable listing <output>_readable.txt.")
    parser.add_argument("-f", "--param_format", choices=["hex", "dec", "bin"], default="hex",
                        help="Word format in the readable file (hex, dec, bin).")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose output.")
    parser.add_argument("-l", "--log", action="store_true",
                        help="Enable log file output <output>.log.")
    parser.add_argument("-d", "--debug", action="store_true",
                        help="Enable debugging mode.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {version}")
    return parser

def setup_logging(args):
    logging.basicConfig(
        level=logging.DEBUG,
        format="    %(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, markup=True)]
    )
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s[%(filename)s:%(lineno)s]"
    log_file_handler = logging.FileHandler(f"{args.output}.log", mode="w", encoding="utf-8") if args.log else logging.NullHandler()
    log_file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(log_file_handler)

def read_source(path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.readlines()
    except FileNotFoundError:
        raise AsmError(f"Input file '{path}' not found.")
    except UnicodeDecodeError as e:
        raise AsmError(f"Input file '{path}' is not valid UTF-8: {e.reason}")
    except OSError as e:
        raise AsmError(f"Cannot read input file '{path}': {e.strerror or e}")

def main(argv=None):
    start_time = time.time()

    # 0) Parse arguments
    args = build_parser().parse_args(argv)
    setup_logging(args)

    global g_debug
    g_debug = args.debug

    # 1) Read input
    lines = read_source(args.input)
    logger.info(f"Parsing input => [bold magenta]{escape(args.input)}[/bold magenta]")

    # 2) Assemble (pass 1, pass 2, jump validation)
    assembly = assemble(lines, verbose=args.verbose)
    logger.info("Assembly complete.")

    if args.debug:
        console.print(build_debug_panel(assembly))

    # 3) Emit output files, only once the word stream is validated
    logger.info("Emitting output files...")
    write_words(args.output, assembly.words, endian=args.endianess, verbose=args.verbose)

    outread = None
    if args.readable:
        outread = args.output + "_readable.txt"
        emit_listing(assembly, outread, fmt=args.param_format, verbose=args.verbose)

    finish_time = time.time()

    # 4) Summary
    output_table = Table(title="[bold white]Output File:[/bold white]", title_justify="left", box=box.MINIMAL_DOUBLE_HEAD, show_lines=True)
    output_table.add_column("Type", style="white", no_wrap=True)
    output_table.add_column("File", style="magenta")
    output_table.add_row("Binary File(int64)", escape(args.output))
    if outread:
        output_table.add_row("Readable File(Text)", escape(outread))

    byte_order = resolve_byte_order(args.endianess)
    summary = f"[bold white]Total Words[/bold white]: [bold blue]{len(assembly.words)}[/bold blue] ([bold blue]{len(assembly.words) * 8}[/bold blue] bytes, {byte_order} endian)\n\n\
[bold white]Input File:[/bold white]\t[bold magenta]{escape(args.input)}[/bold magenta]"

    if args.verbose or args.debug:
        summary = f"[bold white]Elapsed Time: [/bold white]: [bold green]{finish_time-start_time:.4f}[/bold green] seconds\n\n\
[bold white]Total Words[/bold white]: [bold blue]{len(assembly.words)}[/bold blue] ([bold blue]{len(assembly.words) * 8}[/bold blue] bytes, {byte_order} endian)\n\n\
[bold white]Total Instructions:[/bold white] [bold green]{len(assembly.listing)}[/bold green]\n\
[bold white]Total Labels:[/bold white] [bold green]{len(assembly.layout.label_items())}[/bold green]\n\
[bold white]Total Jump References:[/bold white] [bold green]{len(assembly.jump_refs)}[/bold green]\n\n\
[bold white]Input File:[/bold white]\t[bold magenta]{escape(args.input)}[/bold magenta]"

    panel = Panel.fit(Group(summary, output_table), title="[bold blue][INFO][/bold blue] Assembly Summary", subtitle=f"VMASM v{version}", style="bold blue", padding=(2, 1))
    console.print("\n", panel)
    return 0

def run(argv=None):
    """
    entry point: run main() and turn any failure into a diagnostic.

    return: process exit status
    """
    try:
        return main(argv)
    except AsmError as e:
        logger.error(escape(f"{e}"))
        summary = f"[bold red]Assembly Failed with AsmError[/bold red]\n\nCheck:\n[bold white]{escape(str(e))}[/bold white]"
        panel = Panel.fit(summary, title="Assembly Summary", subtitle=f"VMASM v{version}", style="bold red", padding=(2, 1))
        console.print(panel)
        return 1

    except Exception as ex:
        logger.critical(escape(f"{ex}"))
        summary = f"[bold red]Assembly Failed with Exception[/bold red]\n\nCheck:\n[bold white]{escape(str(ex))}[/bold white]"
        panel = Panel.fit(summary, title="Assembly Summary", subtitle=f"VMASM v{version}", style="bold red", padding=(2, 1))
        console.print(panel)
        return 1

def cli():
    sys.exit(run())

if __name__ == "__main__":
    cli()
