"""
8051 Code Generator for TCode
=============================

Turns a parsed Program into 8051 assembly text.

Evaluation Model
----------------
Every expression leaves its result in the accumulator:

- byte results occupy the whole of A
- bit results live in bit 0 of A (acc.0); the other bits are undefined

Binary operators evaluate their left operand into A and their right
operand into B (0F0h). When both operands are compound, the right one is
evaluated first and parked on the stack. Conditions test acc.0.

Register Usage
--------------
| Register | Usage                                        |
|----------|----------------------------------------------|
| A        | Expression result                            |
| B        | Second operand, shift and sleep counters     |
| C        | Bit moves                                    |
| R0 - R7  | fortil loop counters, one per open loop      |

Interrupt handlers push A, B, PSW and every fortil register on entry and
pop them before each `ret`, so an interrupt between a compare and its
conditional jump cannot change the branch taken.

Output Layout
-------------
    include reg8051.inc
    <prologue: vector table, main:, stack and interrupt setup>
    <main program>
    jmp main
    <method bodies>
    end

Address Replay
--------------
Declaration commands do not hand the generator an address to trust. The
generator runs its own ResourceAllocator through the same allocate and
release sequence as the parser and checks that every variable lands
where the parser put it. A mismatch is an internal error.
"""

from typing import Optional

from tcode.compiler import snippets
from tcode.compiler.allocators import Label, ResourceAllocator
from tcode.compiler.commands import (
    Add,
    And,
    Assignment,
    BitOf,
    Bigger,
    Block,
    Break,
    Command,
    CommandVisitor,
    Compare,
    Declaration,
    Decrement,
    Divide,
    ElseBlock,
    Empty,
    EndBlock,
    EndMethod,
    Equal,
    Expression,
    ForTilBlock,
    IfBlock,
    Increment,
    InterruptBinding,
    Kind,
    Method,
    MethodCall,
    Modulo,
    Multiply,
    Not,
    Operation,
    Or,
    Program,
    Return,
    ShiftLeft,
    ShiftRight,
    Sleep,
    Smaller,
    Subtract,
    UnEqual,
    Variable,
    VariableCall,
    WhileBlock,
)
from tcode.compiler.errors import CodeGenError
from tcode.compiler.target import (
    ACC,
    ACC_BIT0,
    ASSEMBLER_SYMBOLS,
    B_REGISTER,
    REGISTER_FILE,
    format_address,
)


ACCU = format_address(ACC)

# Commands wrapped in the interrupt guard: no jumps leave them midway
GUARDED_COMMANDS = (Declaration, Assignment, VariableCall, Operation, MethodCall)


def _is_atom(expression: Expression) -> bool:
    return isinstance(expression, VariableCall)


class CodeGenerator(CommandVisitor):
    """
    Generates 8051 assembly from a Program.

    Usage:
        generator = CodeGenerator()
        asm = generator.generate(program)
    """

    def __init__(
        self,
        output_comments: bool = False,
        guard_interrupts: bool = True,
        register_file: str = REGISTER_FILE,
    ):
        self.output_comments = output_comments
        self.guard_interrupts = guard_interrupts
        self.register_file = register_file

        self._allocator = ResourceAllocator()
        self._main: list[str] = []
        self._methods: list[str] = []
        self._output = self._main
        self._method: Optional[Method] = None
        self._handlers: set[Method] = set()
        self._saved_registers: list[str] = []
        self._symbols: set[str] = set()
        self._declared_names: set[str] = set()

    def generate(self, program: Program) -> str:
        """
        Generate the complete assembly text.

        Args:
            program: Parsed program

        Returns:
            Assembly source, one instruction or directive per line

        Raises:
            CodeGenError: If the program breaks a generator invariant
        """
        self._allocator = ResourceAllocator()
        self._main = []
        self._methods = []
        self._output = self._main
        self._method = None
        self._symbols = set()
        self._declared_names = {
            command.variable.name
            for command in program.commands
            if isinstance(command, Declaration)
        }
        self._saved_registers = sorted({
            command.register
            for command in program.commands
            if isinstance(command, ForTilBlock)
        })

        for method in program.methods.values():
            for parameter in method.parameters:
                self._replay_allocation(parameter)

        self._handlers = {binding.method for binding in program.interrupts}
        guard = self.guard_interrupts and bool(program.interrupts)

        for command in program.commands:
            if isinstance(command, Method):
                self._output = self._methods
                self._method = command

            if self.output_comments and 0 <= command.line < len(program.source_lines):
                text = program.source_lines[command.line].strip()
                if text:
                    self._emit_comment(text)

            if guard and self._method not in self._handlers and self._is_straight_line(command):
                self._emit(snippets.before_command())
                self.visit(command)
                self._emit(snippets.after_command())
            else:
                self.visit(command)

            if isinstance(command, EndMethod):
                self._output = self._main
                self._method = None

        lines = [f"include {self.register_file}"]
        lines.extend(snippets.prologue(program.interrupts))
        lines.extend(self._main)
        lines.extend(snippets.main_loop_end())
        lines.extend(self._methods)
        lines.append("end")
        return "\n".join(lines) + "\n"

    @staticmethod
    def _is_straight_line(command: Command) -> bool:
        if isinstance(command, Declaration):
            return command.initializer is not None
        return isinstance(command, GUARDED_COMMANDS)

    # =========================================================================
    # Emission Helpers
    # =========================================================================

    def _emit(self, line: str) -> None:
        self._output.append(line)

    def _emit_all(self, lines: list[str]) -> None:
        self._output.extend(lines)

    def _emit_comment(self, comment: str) -> None:
        self._emit(f"; {comment}")

    def _emit_label(self, label: Label) -> None:
        self._emit(f"{label}:")

    def _emit_return(self) -> None:
        if self._method in self._handlers:
            self._emit_all(snippets.restore_context(self._saved_registers))
        self._emit("ret")

    def generic_visit(self, command: Command):
        raise CodeGenError(f"cannot generate code for {command.__class__.__name__}")

    # =========================================================================
    # Address Replay
    # =========================================================================

    def _replay_allocation(self, variable: Variable) -> None:
        if variable.kind == Kind.BIT:
            replayed = self._allocator.next_bit_address()
            expected = (variable.address, variable.bit)
        else:
            replayed = self._allocator.next_byte_address()
            expected = variable.address
        if replayed != expected:
            raise CodeGenError(
                f"address of '{variable.name}' differs between parser and generator"
            )

    def _replay_release(self, variables: list[Variable]) -> None:
        for variable in variables:
            if variable.kind == Kind.BIT:
                self._allocator.release_bit()
            else:
                self._allocator.release_byte()

    # =========================================================================
    # Operands
    # =========================================================================

    def _load_accu(self, variable: Variable) -> None:
        if variable.kind == Kind.BIT:
            self._emit_all(snippets.move_bit_to_accu(variable))
        else:
            self._emit(f"mov A, {variable.operand}")

    def _load_b(self, variable: Variable) -> None:
        if variable.kind == Kind.BIT:
            self._emit_all(snippets.move_bit_to_b(variable))
        else:
            self._emit(f"mov {B_REGISTER}, {variable.operand}")

    def _store(self, variable: Variable) -> None:
        """Store the accumulator result into a variable."""
        if variable.kind == Kind.BIT:
            self._emit_all(snippets.store_accu_bit(variable.operand))
        else:
            self._emit(f"mov {variable.operand}, A")

    def _load_operands(self, left: Expression, right: Expression) -> None:
        """Left operand into A, right operand into B."""
        if _is_atom(right):
            self._evaluate(left)
            self._load_b(right.variable)
        elif _is_atom(left):
            self._evaluate(right)
            self._emit(f"mov {B_REGISTER}, A")
            self._load_accu(left.variable)
        else:
            self._evaluate(right)
            self._emit(f"push {ACCU}")
            self._evaluate(left)
            self._emit(f"pop {B_REGISTER}")

    def _evaluate(self, expression: Expression) -> None:
        """Emit code leaving the value of `expression` in A."""
        if isinstance(expression, VariableCall):
            self._load_accu(expression.variable)
        else:
            self.visit(expression)

    # =========================================================================
    # Operations
    # =========================================================================

    def _apply(self, operation: type[Operation], labels: list[Label], signed: bool = False) -> None:
        """Emit the instructions combining A and B for a binary operator."""
        if operation is And:
            self._emit(f"anl A, {B_REGISTER}")
        elif operation is Or:
            self._emit(f"orl A, {B_REGISTER}")
        elif operation is Add:
            self._emit(f"add A, {B_REGISTER}")
        elif operation is Subtract:
            self._emit("clr C")
            self._emit(f"subb A, {B_REGISTER}")
        elif operation is Multiply:
            self._emit("mul AB")
        elif operation is Divide:
            self._emit("div AB")
        elif operation is Modulo:
            self._emit("div AB")
            self._emit(f"mov A, {B_REGISTER}")
        elif operation in (ShiftLeft, ShiftRight):
            loop, test = labels
            rotate = "rlc" if operation is ShiftLeft else "rrc"
            self._emit(f"inc {B_REGISTER}")
            self._emit(f"jmp {test}")
            self._emit_label(loop)
            self._emit("clr C")
            self._emit(f"{rotate} A")
            self._emit_label(test)
            self._emit(f"djnz {B_REGISTER}, {loop}")
        elif issubclass(operation, Compare):
            self._compare(operation, labels, signed)
        else:
            raise CodeGenError(f"no template for operator {operation.__name__}")

    def _compare(self, operation: type[Compare], labels: list[Label], signed: bool) -> None:
        if signed:
            # Flipping the sign bits turns signed order into unsigned order
            self._emit("xrl A, #080h")
            self._emit(f"xrl {B_REGISTER}, #080h")

        first, second = labels
        if operation in (Equal, UnEqual):
            equal_result, unequal_result = ("mov A, #1", "clr A")
            if operation is UnEqual:
                equal_result, unequal_result = unequal_result, equal_result
            self._emit(f"cjne A, {B_REGISTER}, {first}")
            self._emit(equal_result)
            self._emit(f"jmp {second}")
            self._emit_label(first)
            self._emit(unequal_result)
            self._emit_label(second)
        elif operation is Bigger:
            self._emit(f"cjne A, {B_REGISTER}, {first}")
            self._emit("setb C")
            self._emit_label(first)
            self._emit("clr A")
            self._emit(f"jc {second}")
            self._emit("mov A, #1")
            self._emit_label(second)
        elif operation is Smaller:
            self._emit(f"cjne A, {B_REGISTER}, {first}")
            self._emit_label(first)
            self._emit("clr A")
            self._emit(f"jnc {second}")
            self._emit("mov A, #1")
            self._emit_label(second)

    def _visit_binary(self, operation: Operation) -> None:
        self._load_operands(operation.left, operation.right)
        self._apply(type(operation), operation.labels)

    visit_And = _visit_binary
    visit_Or = _visit_binary
    visit_Add = _visit_binary
    visit_Subtract = _visit_binary
    visit_Multiply = _visit_binary
    visit_Divide = _visit_binary
    visit_Modulo = _visit_binary
    visit_ShiftLeft = _visit_binary
    visit_ShiftRight = _visit_binary

    def _visit_compare(self, operation: Compare) -> None:
        self._load_operands(operation.left, operation.right)
        self._apply(type(operation), operation.labels, operation.signed_compare)

    visit_Bigger = _visit_compare
    visit_Smaller = _visit_compare
    visit_Equal = _visit_compare
    visit_UnEqual = _visit_compare

    def visit_Not(self, operation: Not):
        self._evaluate(operation.left)
        if operation.left.kind == Kind.BIT:
            self._emit(f"cpl {ACC_BIT0}")
        else:
            self._emit("cpl A")

    def visit_Increment(self, operation: Increment):
        address = operation.left.variable.operand
        self._emit(f"inc {address}")
        self._emit(f"mov A, {address}")

    def visit_Decrement(self, operation: Decrement):
        address = operation.left.variable.operand
        self._emit(f"dec {address}")
        self._emit(f"mov A, {address}")

    def visit_BitOf(self, operation: BitOf):
        is_set, end = operation.labels
        self._evaluate(operation.left)
        self._emit(f"jb acc.{operation.bit}, {is_set}")
        self._emit(f"clr {ACC_BIT0}")
        self._emit(f"jmp {end}")
        self._emit_label(is_set)
        self._emit(f"setb {ACC_BIT0}")
        self._emit_label(end)

    def visit_VariableCall(self, command: VariableCall):
        self._load_accu(command.variable)

    # =========================================================================
    # Declarations and Assignments
    # =========================================================================

    def visit_Declaration(self, command: Declaration):
        variable = command.variable
        self._replay_allocation(variable)
        directive = "bit" if variable.kind == Kind.BIT else "data"
        self._emit(f"{self._symbol_for(variable.name)} {directive} {variable.operand}")
        if command.initializer is not None:
            self.visit(command.initializer)

    def _symbol_for(self, name: str) -> str:
        """
        Pick the directive symbol for a declared variable.

        Operands are always numeric, so the symbol only has to be unique and
        must not clash with an assembler name. Sibling scopes may reuse a
        name; later declarations get a numbered symbol that no variable uses.
        """
        symbol = name
        suffix = 0
        while symbol in self._symbols or symbol in ASSEMBLER_SYMBOLS:
            suffix += 1
            symbol = f"{name}_{suffix}"
            while symbol in self._declared_names:
                suffix += 1
                symbol = f"{name}_{suffix}"
        self._symbols.add(symbol)
        return symbol

    def visit_Assignment(self, command: Assignment):
        target = command.target
        value = command.value

        if command.bit is not None:
            self._evaluate(value)
            self._emit(f"mov C, {ACC_BIT0}")
            self._emit(f"mov A, {target.operand}")
            self._emit(f"mov acc.{command.bit}, C")
            self._emit(f"mov {target.operand}, A")
            return

        if command.OPERATION is not None:
            self._evaluate(value)
            self._emit(f"mov {B_REGISTER}, A")
            self._load_accu(target)
            self._apply(command.OPERATION, [])
        elif _is_atom(value):
            if target.kind == Kind.BIT:
                self._emit_all(snippets.move_bit(value.variable, target.operand))
            else:
                self._emit(f"mov {target.operand}, {value.variable.operand}")
            return
        else:
            self._evaluate(value)
        self._store(target)

    visit_AddAssignment = visit_Assignment
    visit_SubtractAssignment = visit_Assignment
    visit_MultiplyAssignment = visit_Assignment
    visit_DivideAssignment = visit_Assignment
    visit_ModuloAssignment = visit_Assignment
    visit_AndAssignment = visit_Assignment
    visit_OrAssignment = visit_Assignment

    # =========================================================================
    # Blocks
    # =========================================================================

    def visit_Block(self, command: Block):
        pass

    def visit_IfBlock(self, command: IfBlock):
        self._evaluate(command.condition)
        target = command.else_label or command.end_label
        self._emit(f"jnb {ACC_BIT0}, {target}")

    def visit_ElseBlock(self, command: ElseBlock):
        self._replay_release(command.if_block.variables)
        self._emit(f"jmp {command.end_label}")
        self._emit_label(command.if_block.else_label)

    def visit_WhileBlock(self, command: WhileBlock):
        self._emit_label(command.top_label)
        self._evaluate(command.condition)
        self._emit(f"jnb {ACC_BIT0}, {command.end_label}")

    def visit_ForTilBlock(self, command: ForTilBlock):
        self._evaluate(command.limit)
        self._emit(f"mov {command.register}, A")
        self._emit(f"jz {command.end_label}")
        self._emit_label(command.top_label)

    def visit_EndBlock(self, command: EndBlock):
        block = command.block
        if isinstance(block, WhileBlock):
            self._emit(f"jmp {block.top_label}")
        elif isinstance(block, ForTilBlock):
            self._emit(f"djnz {block.register}, {block.top_label}")
        self._emit_label(block.end_label)
        self._replay_release(block.variables)

    def visit_Break(self, command: Break):
        self._emit(f"jmp {command.block.end_label}")

    # =========================================================================
    # Methods
    # =========================================================================

    def visit_Method(self, command: Method):
        self._emit_label(command.label)
        if command in self._handlers:
            self._emit_all(snippets.save_context(self._saved_registers))

    def visit_EndMethod(self, command: EndMethod):
        self._emit_return()
        self._replay_release(command.method.variables)

    def visit_Return(self, command: Return):
        if command.value is not None:
            self._evaluate(command.value)
        self._emit_return()

    def visit_MethodCall(self, command: MethodCall):
        for parameter, argument in zip(command.method.parameters, command.arguments):
            if _is_atom(argument):
                if parameter.kind == Kind.BIT:
                    self._emit_all(snippets.move_bit(argument.variable, parameter.operand))
                else:
                    self._emit(f"mov {parameter.operand}, {argument.variable.operand}")
            else:
                self._evaluate(argument)
                self._store(parameter)
        self._emit(f"call {command.method.label}")

    def visit_InterruptBinding(self, command: InterruptBinding):
        pass

    # =========================================================================
    # Other Statements
    # =========================================================================

    def visit_Sleep(self, command: Sleep):
        outer, inner, end = command.labels
        self._evaluate(command.value)
        self._emit(f"jz {end}")
        self._emit_label(outer)
        self._emit(f"mov {B_REGISTER}, #0FAh")
        self._emit_label(inner)
        self._emit("nop")
        self._emit("nop")
        self._emit(f"djnz {B_REGISTER}, {inner}")
        self._emit(f"djnz {ACCU}, {outer}")
        self._emit_label(end)

    def visit_Empty(self, command: Empty):
        pass
