"""
TCode Command Tree
==================

Every source line becomes exactly one Command. Expressions are commands
too, so a line such as "x++" or "blink[]" is stored as the expression
node itself.

Command Hierarchy
-----------------
Command (base)
├── Empty - blank or comment-only line
├── Declaration - int/char/cint/bool with optional initializer
├── Blocks
│   ├── Block - block / { ... endblock / }
│   ├── IfBlock - if [cond] ... endif
│   ├── ElseBlock - else ... endif
│   ├── WhileBlock - while [cond] ... endwhile
│   ├── ForTilBlock - fortil n ... endfortil
│   ├── EndBlock - any closer
│   └── Break - jump past the innermost block
├── Methods
│   ├── Method - method name[params]
│   ├── EndMethod - endmethod
│   ├── Return - return [expr]
│   └── InterruptBinding - interrupt <source> <method>
├── Sleep - busy wait
├── Assignments
│   ├── Assignment - :=
│   └── AddAssignment, SubtractAssignment, ... - += -= *= /= %= &= |=
└── Expressions
    ├── VariableCall - variable or constant operand
    ├── MethodCall - name[args]
    └── Operation
        ├── And, Or, Not
        ├── Add, Subtract, Multiply, Divide, Modulo
        ├── Increment, Decrement, ShiftLeft, ShiftRight
        ├── BitOf
        └── Compare: Bigger, Smaller, Equal, UnEqual

Variables are not commands; they are the resources declarations and
expressions refer to. A variable's address is fixed by the parser.

Labels inside blocks are filled in while parsing: a block's end label
is only assigned when the block closes, which is why Break keeps a
reference to the block instead of a label.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import ClassVar, Optional, Union

from tcode.compiler.allocators import Label
from tcode.compiler.target import (
    InterruptSource,
    format_address,
    format_bit,
    format_immediate,
)


# =============================================================================
# Variables
# =============================================================================

class Kind(Enum):
    """Addressing kind of a value."""
    BIT = auto()
    BYTE = auto()


@dataclass(eq=False)
class Variable:
    """
    A named or constant value.

    Attributes:
        name: Variable name (the literal text for constants)
        address: Byte address, or the bit's byte address for Bool
        constant: True for literals
        value: Literal value for constants
        standard: True for predefined variables (ports)
    """
    name: str = ""
    address: Optional[int] = None
    constant: bool = False
    value: int = 0
    standard: bool = False

    KIND: ClassVar[Kind] = Kind.BYTE
    TYPE_NAME: ClassVar[str] = ""
    SIGNED: ClassVar[bool] = False

    @property
    def kind(self) -> Kind:
        return self.KIND

    @property
    def signed(self) -> bool:
        return self.SIGNED

    @property
    def operand(self) -> str:
        """Assembler operand for this value: direct address or immediate."""
        if self.constant:
            return format_immediate(self.value)
        return format_address(self.address)

    def __str__(self) -> str:
        return self.name


@dataclass(eq=False)
class Bool(Variable):
    """A single bit in the bit-addressable area."""
    bit: int = 0

    KIND: ClassVar[Kind] = Kind.BIT
    TYPE_NAME: ClassVar[str] = "bool"

    @property
    def operand(self) -> str:
        return format_bit(self.address, self.bit)


@dataclass(eq=False)
class Int(Variable):
    TYPE_NAME: ClassVar[str] = "int"


@dataclass(eq=False)
class Char(Variable):
    TYPE_NAME: ClassVar[str] = "char"


@dataclass(eq=False)
class Cint(Variable):
    """Signed byte. Literals bound to it are read as -128..127."""
    TYPE_NAME: ClassVar[str] = "cint"
    SIGNED: ClassVar[bool] = True


VARIABLE_TYPES: dict[str, type[Variable]] = {
    cls.TYPE_NAME: cls for cls in (Bool, Int, Char, Cint)
}


# =============================================================================
# Base Command
# =============================================================================

@dataclass(eq=False)
class Command:
    """
    Base class for all commands.

    Attributes:
        line: 0-based index of the source line (-1 for nested expressions)
    """
    line: int = -1


@dataclass(eq=False)
class Empty(Command):
    pass


# =============================================================================
# Expressions
# =============================================================================

@dataclass(eq=False)
class VariableCall(Command):
    """Use of a variable or constant as an operand."""
    variable: Optional[Variable] = None

    @property
    def kind(self) -> Optional[Kind]:
        return self.variable.kind

    @property
    def signed(self) -> bool:
        return self.variable.signed


@dataclass(eq=False)
class Operation(Command):
    """
    Operator applied to one or two operands.

    Unary operators keep their operand in `left`. `labels` holds the jump
    labels the instruction template needs, allocated by the parser.
    """
    left: Optional["Expression"] = None
    right: Optional["Expression"] = None
    labels: list[Label] = field(default_factory=list)

    SYMBOL: ClassVar[str] = ""
    LABELS: ClassVar[int] = 0
    UNARY: ClassVar[bool] = False
    OPERAND_KINDS: ClassVar[frozenset] = frozenset({Kind.BYTE})
    RESULT_KIND: ClassVar[Optional[Kind]] = None    # None: same as operands

    @property
    def kind(self) -> Kind:
        if self.RESULT_KIND is not None:
            return self.RESULT_KIND
        return self.left.kind

    @property
    def signed(self) -> bool:
        if self.RESULT_KIND is not None:
            return False
        return self.left.signed


# === Logic ===

@dataclass(eq=False)
class And(Operation):
    SYMBOL: ClassVar[str] = "&"
    OPERAND_KINDS: ClassVar[frozenset] = frozenset({Kind.BIT, Kind.BYTE})


@dataclass(eq=False)
class Or(Operation):
    SYMBOL: ClassVar[str] = "|"
    OPERAND_KINDS: ClassVar[frozenset] = frozenset({Kind.BIT, Kind.BYTE})


@dataclass(eq=False)
class Not(Operation):
    SYMBOL: ClassVar[str] = "!"
    UNARY: ClassVar[bool] = True
    OPERAND_KINDS: ClassVar[frozenset] = frozenset({Kind.BIT, Kind.BYTE})


# === Arithmetic ===

@dataclass(eq=False)
class Add(Operation):
    SYMBOL: ClassVar[str] = "+"


@dataclass(eq=False)
class Subtract(Operation):
    SYMBOL: ClassVar[str] = "-"


@dataclass(eq=False)
class Multiply(Operation):
    SYMBOL: ClassVar[str] = "*"


@dataclass(eq=False)
class Divide(Operation):
    SYMBOL: ClassVar[str] = "/"


@dataclass(eq=False)
class Modulo(Operation):
    SYMBOL: ClassVar[str] = "%"


@dataclass(eq=False)
class Increment(Operation):
    SYMBOL: ClassVar[str] = "++"
    UNARY: ClassVar[bool] = True


@dataclass(eq=False)
class Decrement(Operation):
    SYMBOL: ClassVar[str] = "--"
    UNARY: ClassVar[bool] = True


@dataclass(eq=False)
class ShiftLeft(Operation):
    SYMBOL: ClassVar[str] = "<<"
    LABELS: ClassVar[int] = 2


@dataclass(eq=False)
class ShiftRight(Operation):
    SYMBOL: ClassVar[str] = ">>"
    LABELS: ClassVar[int] = 2


@dataclass(eq=False)
class BitOf(Operation):
    """Bit `bit` of a byte operand, e.g. flags.3."""
    bit: int = 0

    SYMBOL: ClassVar[str] = "."
    LABELS: ClassVar[int] = 2
    UNARY: ClassVar[bool] = True
    RESULT_KIND: ClassVar[Optional[Kind]] = Kind.BIT


# === Comparisons ===

@dataclass(eq=False)
class Compare(Operation):
    """Byte comparison with a bit result; `signed` selects two's complement order."""
    signed_compare: bool = False

    LABELS: ClassVar[int] = 2
    RESULT_KIND: ClassVar[Optional[Kind]] = Kind.BIT


@dataclass(eq=False)
class Bigger(Compare):
    SYMBOL: ClassVar[str] = ">"


@dataclass(eq=False)
class Smaller(Compare):
    SYMBOL: ClassVar[str] = "<"


@dataclass(eq=False)
class Equal(Compare):
    SYMBOL: ClassVar[str] = "="


@dataclass(eq=False)
class UnEqual(Compare):
    SYMBOL: ClassVar[str] = "!="


# =============================================================================
# Methods
# =============================================================================

@dataclass(eq=False)
class Method(Command):
    """
    A subroutine.

    Created during signature collection, so calls may appear before the
    body. Parameters get their addresses at that time and keep them for
    the whole compile.

    Attributes:
        name: Method name
        parameters: Ordered parameter variables
        label: Entry label (M1, M2, ...)
        variables: Locals declared directly in the method body
    """
    name: str = ""
    parameters: list[Variable] = field(default_factory=list)
    label: Optional[Label] = None
    variables: list[Variable] = field(default_factory=list)


@dataclass(eq=False)
class EndMethod(Command):
    method: Optional[Method] = None


@dataclass(eq=False)
class Return(Command):
    method: Optional[Method] = None
    value: Optional["Expression"] = None


@dataclass(eq=False)
class MethodCall(Command):
    """Call of a method; the return value (if any) is left in A."""
    method: Optional[Method] = None
    arguments: list["Expression"] = field(default_factory=list)

    @property
    def kind(self) -> Optional[Kind]:
        return None

    @property
    def signed(self) -> bool:
        return False


@dataclass(eq=False)
class InterruptBinding(Command):
    """Binds a parameterless method to an interrupt vector."""
    source: Optional[InterruptSource] = None
    method: Optional[Method] = None
    counter: bool = False


Expression = Union[VariableCall, Operation, MethodCall]


# =============================================================================
# Blocks
# =============================================================================

@dataclass(eq=False)
class Block(Command):
    """
    A scope. Owns the variables declared directly inside it.

    Attributes:
        variables: Variables released when the block closes
        end_label: Assigned when the block closes
    """
    variables: list[Variable] = field(default_factory=list)
    end_label: Optional[Label] = None

    KEYWORD: ClassVar[str] = "block"


@dataclass(eq=False)
class IfBlock(Block):
    condition: Optional[Expression] = None
    else_label: Optional[Label] = None

    KEYWORD: ClassVar[str] = "if"


@dataclass(eq=False)
class ElseBlock(Block):
    """The else part of an if; shares the if's end label."""
    if_block: Optional[IfBlock] = None

    KEYWORD: ClassVar[str] = "else"


@dataclass(eq=False)
class WhileBlock(Block):
    condition: Optional[Expression] = None
    top_label: Optional[Label] = None

    KEYWORD: ClassVar[str] = "while"


@dataclass(eq=False)
class ForTilBlock(Block):
    """Counted loop; `register` counts down from the limit to zero."""
    limit: Optional[Expression] = None
    register: str = ""
    top_label: Optional[Label] = None

    KEYWORD: ClassVar[str] = "fortil"


@dataclass(eq=False)
class EndBlock(Command):
    block: Optional[Block] = None


@dataclass(eq=False)
class Break(Command):
    block: Optional[Block] = None


# =============================================================================
# Statements
# =============================================================================

@dataclass(eq=False)
class Declaration(Command):
    variable: Optional[Variable] = None
    initializer: Optional["Assignment"] = None


@dataclass(eq=False)
class Assignment(Command):
    """
    Store a value into a variable.

    When `bit` is set, only that bit of the byte target is written
    (flags.3 := true).
    """
    target: Optional[Variable] = None
    value: Optional[Expression] = None
    bit: Optional[int] = None

    SYMBOL: ClassVar[str] = ":="
    OPERATION: ClassVar[Optional[type[Operation]]] = None


@dataclass(eq=False)
class AddAssignment(Assignment):
    SYMBOL: ClassVar[str] = "+="
    OPERATION: ClassVar[Optional[type[Operation]]] = Add


@dataclass(eq=False)
class SubtractAssignment(Assignment):
    SYMBOL: ClassVar[str] = "-="
    OPERATION: ClassVar[Optional[type[Operation]]] = Subtract


@dataclass(eq=False)
class MultiplyAssignment(Assignment):
    SYMBOL: ClassVar[str] = "*="
    OPERATION: ClassVar[Optional[type[Operation]]] = Multiply


@dataclass(eq=False)
class DivideAssignment(Assignment):
    SYMBOL: ClassVar[str] = "/="
    OPERATION: ClassVar[Optional[type[Operation]]] = Divide


@dataclass(eq=False)
class ModuloAssignment(Assignment):
    SYMBOL: ClassVar[str] = "%="
    OPERATION: ClassVar[Optional[type[Operation]]] = Modulo


@dataclass(eq=False)
class AndAssignment(Assignment):
    SYMBOL: ClassVar[str] = "&="
    OPERATION: ClassVar[Optional[type[Operation]]] = And


@dataclass(eq=False)
class OrAssignment(Assignment):
    SYMBOL: ClassVar[str] = "|="
    OPERATION: ClassVar[Optional[type[Operation]]] = Or


@dataclass(eq=False)
class Sleep(Command):
    """Busy wait of roughly `value` milliseconds."""
    value: Optional[Expression] = None
    labels: list[Label] = field(default_factory=list)

    LABELS: ClassVar[int] = 3


# =============================================================================
# Program
# =============================================================================

@dataclass(eq=False)
class Program:
    """
    Result of parsing.

    Attributes:
        commands: One command per source line, in order
        methods: Methods by name, in declaration order
        interrupts: Interrupt bindings in source order
        source_lines: The raw source lines
    """
    commands: list[Command] = field(default_factory=list)
    methods: dict[str, Method] = field(default_factory=dict)
    interrupts: list[InterruptBinding] = field(default_factory=list)
    source_lines: list[str] = field(default_factory=list)


# =============================================================================
# Visitor Pattern
# =============================================================================

class CommandVisitor:
    """
    Base class for command visitors.

    Dispatches to visit_<ClassName>; classes without a handler fall back
    to generic_visit.
    """

    def visit(self, command: Command):
        method_name = f"visit_{command.__class__.__name__}"
        visitor = getattr(self, method_name, self.generic_visit)
        return visitor(command)

    def generic_visit(self, command: Command):
        raise NotImplementedError(
            f"{self.__class__.__name__} cannot handle {command.__class__.__name__}"
        )


def describe(expression: Expression) -> str:
    """Render an expression back to TCode-like text."""
    if isinstance(expression, VariableCall):
        return expression.variable.name
    if isinstance(expression, MethodCall):
        arguments = ", ".join(describe(a) for a in expression.arguments)
        return f"{expression.method.name}[{arguments}]"
    if isinstance(expression, BitOf):
        return f"{describe(expression.left)}.{expression.bit}"
    if isinstance(expression, (Increment, Decrement)):
        return f"{describe(expression.left)}{expression.SYMBOL}"
    if isinstance(expression, Not):
        return f"!{describe(expression.left)}"
    return f"({describe(expression.left)} {expression.SYMBOL} {describe(expression.right)})"


class CommandPrinter(CommandVisitor):
    """
    Pretty printer for parsed programs.

    Block contents are indented under their opener.

    Usage:
        printer = CommandPrinter()
        print(printer.print(program))
    """

    def __init__(self):
        self.output: list[str] = []
        self.indent_level = 0

    def print(self, program: Program) -> str:
        """Print the program and return as string."""
        self.output = []
        self.indent_level = 0
        self._emit("Program")
        self._indent()
        for binding in program.interrupts:
            self._emit(f"Interrupt: {binding.source.name.lower()} -> {binding.method.name}")
        for command in program.commands:
            self.visit(command)
        self._dedent()
        return "\n".join(self.output)

    def _emit(self, text: str) -> None:
        indent = "  " * self.indent_level
        self.output.append(f"{indent}{text}")

    def _indent(self) -> None:
        self.indent_level += 1

    def _dedent(self) -> None:
        self.indent_level = max(0, self.indent_level - 1)

    def generic_visit(self, command: Command):
        if isinstance(command, (VariableCall, Operation, MethodCall)):
            self._emit(f"Expression: {describe(command)}")
        else:
            self._emit(command.__class__.__name__)

    def visit_Empty(self, command: Empty):
        pass

    def visit_InterruptBinding(self, command: InterruptBinding):
        pass

    def visit_Declaration(self, command: Declaration):
        variable = command.variable
        text = f"{variable.TYPE_NAME} {variable.name} @ {variable.operand}"
        if command.initializer is not None:
            text += f" := {describe(command.initializer.value)}"
        self._emit(f"Declaration: {text}")

    def visit_Assignment(self, command: Assignment):
        target = command.target.name
        if command.bit is not None:
            target += f".{command.bit}"
        self._emit(f"Assignment: {target} {command.SYMBOL} {describe(command.value)}")

    visit_AddAssignment = visit_Assignment
    visit_SubtractAssignment = visit_Assignment
    visit_MultiplyAssignment = visit_Assignment
    visit_DivideAssignment = visit_Assignment
    visit_ModuloAssignment = visit_Assignment
    visit_AndAssignment = visit_Assignment
    visit_OrAssignment = visit_Assignment

    def visit_Block(self, command: Block):
        self._emit("Block")
        self._indent()

    def visit_IfBlock(self, command: IfBlock):
        self._emit(f"If [{describe(command.condition)}]")
        self._indent()

    def visit_ElseBlock(self, command: ElseBlock):
        self._dedent()
        self._emit("Else")
        self._indent()

    def visit_WhileBlock(self, command: WhileBlock):
        self._emit(f"While [{describe(command.condition)}]")
        self._indent()

    def visit_ForTilBlock(self, command: ForTilBlock):
        self._emit(f"ForTil {describe(command.limit)} using {command.register}")
        self._indent()

    def visit_EndBlock(self, command: EndBlock):
        self._dedent()

    def visit_Method(self, command: Method):
        params = ", ".join(f"{p.TYPE_NAME} {p.name}" for p in command.parameters)
        self._emit(f"Method: {command.name}[{params}] ({command.label})")
        self._indent()

    def visit_EndMethod(self, command: EndMethod):
        self._dedent()

    def visit_Return(self, command: Return):
        if command.value is None:
            self._emit("Return")
        else:
            self._emit(f"Return: {describe(command.value)}")

    def visit_Sleep(self, command: Sleep):
        self._emit(f"Sleep: {describe(command.value)}")
