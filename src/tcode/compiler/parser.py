"""
TCode Two-Phase Parser
======================

Builds the command sequence for a TCode program while allocating every
hardware resource it needs.

Phases
------
1. **Signature collection**: every `method name[params]` line is read
   first, so calls may appear before the method body. Parameters get
   their addresses here and keep them for the whole compile. Interrupt
   bindings are resolved against the collected methods.
2. **Body compilation**: lines are walked in order with a scope stack,
   a live variable table and the method table. Each line produces one
   Command; declarations allocate addresses, closers release them.

Grammar (one construct per line)
--------------------------------
declaration   ::= ('int' | 'char' | 'cint' | 'bool') NAME (assign_op expr)?
assignment    ::= target assign_op expr
target        ::= NAME | NAME '.' DIGIT
block         ::= ('block' | '{') ... ('endblock' | '}')
if            ::= 'if' '[' expr ']' ... ('else' ...)? 'endif'
while         ::= 'while' '[' expr ']' ... 'endwhile'
fortil        ::= 'fortil' expr ... 'endfortil'
method        ::= 'method' NAME '[' (type NAME (',' type NAME)*)? ']' ... 'endmethod'
return        ::= 'return' expr?
call          ::= NAME '[' (expr (',' expr)*)? ']'
sleep         ::= 'sleep' expr
interrupt     ::= 'interrupt' SOURCE NAME

Expressions are split on operators in the classifier's priority order.

Example Usage
-------------
>>> from tcode.compiler.parser import TCodeParser
>>> program = TCodeParser("int x := 5".splitlines()).parse()
>>> program.commands[0].variable.operand
'031h'
"""

import logging
import re
from typing import Optional

from tcode.compiler.allocators import ResourceAllocator
from tcode.compiler.classifier import (
    ASSIGNMENT_TYPES,
    KEYWORDS,
    OPERATOR_SYMBOLS,
    CommandType,
    classify,
    classify_operator,
    first_word,
    is_valid_name,
    normalize_line,
    split_assignment,
    split_binary,
)
from tcode.compiler.commands import (
    VARIABLE_TYPES,
    Add,
    AddAssignment,
    And,
    AndAssignment,
    Assignment,
    BitOf,
    Bigger,
    Block,
    Bool,
    Break,
    Char,
    Cint,
    Command,
    Compare,
    Declaration,
    Decrement,
    Divide,
    DivideAssignment,
    ElseBlock,
    Empty,
    EndBlock,
    EndMethod,
    Equal,
    Expression,
    ForTilBlock,
    IfBlock,
    Increment,
    Int,
    InterruptBinding,
    Kind,
    Method,
    MethodCall,
    Modulo,
    ModuloAssignment,
    Multiply,
    MultiplyAssignment,
    Not,
    Operation,
    Or,
    OrAssignment,
    Program,
    Return,
    ShiftLeft,
    ShiftRight,
    Sleep,
    Smaller,
    Subtract,
    SubtractAssignment,
    UnEqual,
    Variable,
    VariableCall,
    WhileBlock,
)
from tcode.compiler.errors import (
    ElseWithoutIfError,
    InvalidCommandError,
    InvalidNameError,
    InvalidSyntaxError,
    InvalidValueError,
    ParameterError,
    TCompileError,
    VariableExistsError,
)
from tcode.compiler.target import INTERRUPT_KEYWORDS, PORTS

logger = logging.getLogger(__name__)


OPERATIONS: dict[CommandType, type[Operation]] = {
    CommandType.AND: And,
    CommandType.OR: Or,
    CommandType.NOT: Not,
    CommandType.ADD: Add,
    CommandType.SUBTRACT: Subtract,
    CommandType.MULTIPLY: Multiply,
    CommandType.DIVIDE: Divide,
    CommandType.MODULO: Modulo,
    CommandType.INCREMENT: Increment,
    CommandType.DECREMENT: Decrement,
    CommandType.SHIFT_LEFT: ShiftLeft,
    CommandType.SHIFT_RIGHT: ShiftRight,
    CommandType.BIT_OF: BitOf,
    CommandType.BIGGER: Bigger,
    CommandType.SMALLER: Smaller,
    CommandType.EQUAL: Equal,
    CommandType.UNEQUAL: UnEqual,
}

ASSIGNMENTS: dict[CommandType, type[Assignment]] = {
    CommandType.ASSIGNMENT: Assignment,
    CommandType.ADD_ASSIGNMENT: AddAssignment,
    CommandType.SUBTRACT_ASSIGNMENT: SubtractAssignment,
    CommandType.MULTIPLY_ASSIGNMENT: MultiplyAssignment,
    CommandType.DIVIDE_ASSIGNMENT: DivideAssignment,
    CommandType.MODULO_ASSIGNMENT: ModuloAssignment,
    CommandType.AND_ASSIGNMENT: AndAssignment,
    CommandType.OR_ASSIGNMENT: OrAssignment,
}

# Which opener each closer may close
CLOSERS: dict[CommandType, tuple[type[Block], ...]] = {
    CommandType.END_BLOCK: (Block,),
    CommandType.END_IF: (IfBlock, ElseBlock),
    CommandType.END_WHILE: (WhileBlock,),
    CommandType.END_FOR_TIL: (ForTilBlock,),
}

DECLARATIONS = frozenset({CommandType.BOOL, CommandType.CHAR, CommandType.INT, CommandType.CINT})

HEX_LITERAL = re.compile(r"^0x[0-9a-f]+$")
DECIMAL_LITERAL = re.compile(r"^-?[0-9]+$")
CALL_PATTERN = re.compile(r"^([a-z][a-z0-9_]*)\s*\[(.*)\]$")
SIGNATURE_PATTERN = re.compile(r"^method\s+([^\s\[]*)\s*\[(.*)\]$")


def standard_variables() -> dict[str, Variable]:
    """Predefined variables visible everywhere: the four I/O ports."""
    return {
        name: Int(name=name, address=address, standard=True)
        for name, address in PORTS.items()
    }


def split_arguments(text: str) -> list[str]:
    """Split a comma separated list, ignoring commas inside brackets or literals."""
    parts = []
    depth = 0
    in_literal = False
    current = []
    for char in text:
        if char == "'":
            in_literal = not in_literal
        elif not in_literal:
            if char == "[":
                depth += 1
            elif char == "]":
                depth -= 1
            elif char == "," and depth == 0:
                parts.append("".join(current).strip())
                current = []
                continue
        current.append(char)
    last = "".join(current).strip()
    if last or parts:
        parts.append(last)
    return parts


def _brackets_enclose(text: str, start: int) -> bool:
    """True when the '[' at `start` is closed by the final character."""
    depth = 0
    in_literal = False
    for i in range(start, len(text)):
        char = text[i]
        if char == "'":
            in_literal = not in_literal
        elif in_literal:
            continue
        elif char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return i == len(text) - 1
    return False


class TCodeParser:
    """
    Two-phase parser producing a Program.

    A parser instance handles exactly one compile; all counters, scopes
    and tables live on the instance.

    Attributes:
        source_lines: Raw source lines as given
        lines: Normalised lines (comment stripped, lower case)
        allocator: Resource counters for this compile
        methods: Method table filled during signature collection
        variables: Live variables by name
        scopes: Open blocks, innermost last
        current_method: Method whose body is being compiled, if any
    """

    def __init__(
        self,
        source_lines: list[str],
        filename: str = "<input>",
        allocator: Optional[ResourceAllocator] = None,
    ):
        self.source_lines = list(source_lines)
        self.lines = [normalize_line(line) for line in self.source_lines]
        self.filename = filename
        self.allocator = allocator or ResourceAllocator()

        self.methods: dict[str, Method] = {}
        self.interrupts: list[InterruptBinding] = []
        self._bindings: dict[int, InterruptBinding] = {}

        self.variables: dict[str, Variable] = standard_variables()
        self.scopes: list[Block] = []
        self.current_method: Optional[Method] = None

    def parse(self) -> Program:
        """
        Run both phases.

        Returns:
            The parsed Program

        Raises:
            TCompileError: On the first error, located at its source line
        """
        self.collect_signatures()
        commands = self.compile_body()
        return Program(
            commands=commands,
            methods=self.methods,
            interrupts=self.interrupts,
            source_lines=self.source_lines,
        )

    def _locate(self, error: TCompileError, index: int) -> None:
        error.locate(index, self.source_lines[index].strip(), self.filename)

    # =========================================================================
    # Phase 1: Signature Collection
    # =========================================================================

    def collect_signatures(self) -> None:
        """Register every method signature, then every interrupt binding."""
        for index, line in enumerate(self.lines):
            if classify(line) != CommandType.METHOD:
                continue
            try:
                method = self._parse_signature(line)
            except TCompileError as err:
                self._locate(err, index)
                raise
            method.line = index
            self.methods[method.name] = method

        # A parameter named like a method would resolve to a call in the body
        for method in self.methods.values():
            for parameter in method.parameters:
                if parameter.name in self.methods:
                    err = VariableExistsError(parameter.name)
                    self._locate(err, method.line)
                    raise err

        for index, line in enumerate(self.lines):
            if classify(line) != CommandType.INTERRUPT:
                continue
            try:
                binding = self._parse_interrupt(line)
            except TCompileError as err:
                self._locate(err, index)
                raise
            binding.line = index
            self.interrupts.append(binding)
            self._bindings[index] = binding

        logger.debug(
            f"Collected {len(self.methods)} method(s) and {len(self.interrupts)} interrupt binding(s)"
        )

    def _parse_signature(self, line: str) -> Method:
        match = SIGNATURE_PATTERN.match(line)
        if match is None:
            raise InvalidSyntaxError(
                "method needs a parameter list",
                hint="write 'method name[]' for a method without parameters",
            )
        name, parameter_text = match.group(1), match.group(2)
        if not is_valid_name(name):
            raise InvalidNameError(name)
        if name in self.methods or name in PORTS:
            raise VariableExistsError(name)

        parameters: list[Variable] = []
        for declaration in split_arguments(parameter_text):
            words = declaration.split()
            if len(words) != 2 or words[0] not in VARIABLE_TYPES:
                raise ParameterError(f"invalid parameter '{declaration}'")
            type_name, parameter_name = words
            if not is_valid_name(parameter_name):
                raise InvalidNameError(parameter_name)
            if (
                parameter_name == name
                or parameter_name in PORTS
                or any(p.name == parameter_name for p in parameters)
            ):
                raise VariableExistsError(parameter_name)
            parameters.append(self._allocate(VARIABLE_TYPES[type_name], parameter_name))

        return Method(
            name=name,
            parameters=parameters,
            label=self.allocator.next_method_label(),
        )

    def _parse_interrupt(self, line: str) -> InterruptBinding:
        words = line.split()
        if len(words) != 3:
            raise InvalidSyntaxError(
                "expected 'interrupt <source> <method>'",
                hint="sources: " + ", ".join(INTERRUPT_KEYWORDS),
            )
        _, source_name, method_name = words
        if source_name not in INTERRUPT_KEYWORDS:
            raise ParameterError(f"unknown interrupt source '{source_name}'")
        method = self.methods.get(method_name)
        if method is None:
            raise InvalidNameError(method_name, "unknown method")
        if method.parameters:
            raise ParameterError(f"interrupt handler '{method_name}' cannot take parameters")

        source, counter = INTERRUPT_KEYWORDS[source_name]
        if any(b.source is source for b in self.interrupts):
            raise ParameterError(f"interrupt vector of '{source_name}' is already bound")
        return InterruptBinding(source=source, method=method, counter=counter)

    # =========================================================================
    # Phase 2: Body Compilation
    # =========================================================================

    def compile_body(self) -> list[Command]:
        """Translate every line into a command, in source order."""
        commands: list[Command] = []
        for index, line in enumerate(self.lines):
            try:
                command = self._parse_line(line, index)
            except TCompileError as err:
                self._locate(err, index)
                raise
            command.line = index
            commands.append(command)

        self._check_all_closed()
        logger.debug(f"Parsed {len(commands)} line(s)")
        return commands

    def _check_all_closed(self) -> None:
        if self.scopes:
            opener = self.scopes[-1]
            error = InvalidSyntaxError(f"'{opener.KEYWORD}' is never closed")
        elif self.current_method is not None:
            opener = self.current_method
            error = InvalidSyntaxError(f"method '{opener.name}' is never closed")
        else:
            return
        self._locate(error, opener.line)
        raise error

    def _parse_line(self, line: str, index: int) -> Command:
        command_type = classify(line)

        if command_type == CommandType.EMPTY:
            return Empty()
        if command_type == CommandType.INCLUDE:
            raise InvalidCommandError("include must be expanded before compiling")
        if command_type == CommandType.INTERRUPT:
            return self._bindings[index]
        if command_type in DECLARATIONS:
            return self._parse_declaration(line, command_type)
        if command_type in ASSIGNMENT_TYPES:
            return self._parse_assignment(line, command_type)
        if command_type in CLOSERS:
            return self._close_block(command_type, line)

        handler = {
            CommandType.BLOCK: self._open_block,
            CommandType.IF: self._open_if,
            CommandType.ELSE: self._open_else,
            CommandType.WHILE: self._open_while,
            CommandType.FOR_TIL: self._open_for_til,
            CommandType.BREAK: self._parse_break,
            CommandType.METHOD: self._open_method,
            CommandType.END_METHOD: self._close_method,
            CommandType.RETURN: self._parse_return,
            CommandType.SLEEP: self._parse_sleep,
        }.get(command_type)
        if handler is not None:
            return handler(line)

        if command_type == CommandType.REFERENCE:
            atom = self._resolve_atom(line, signed=False)
            if atom is None:
                raise InvalidCommandError(f"unknown command '{line}'")
            return atom

        # A standalone operation, e.g. "x++"
        return self.resolve(line)

    # =========================================================================
    # Variables and Scopes
    # =========================================================================

    def _allocate(self, variable_type: type[Variable], name: str) -> Variable:
        if variable_type.KIND == Kind.BIT:
            address, bit = self.allocator.next_bit_address()
            return Bool(name=name, address=address, bit=bit)
        return variable_type(name=name, address=self.allocator.next_byte_address())

    def _release(self, variables: list[Variable]) -> None:
        """Release addresses and names, newest first."""
        for variable in reversed(variables):
            self.variables.pop(variable.name, None)
            if variable.kind == Kind.BIT:
                self.allocator.release_bit()
            else:
                self.allocator.release_byte()

    def _declare(self, variable_type: type[Variable], name: str) -> Variable:
        if not is_valid_name(name):
            raise InvalidNameError(name)
        if name in self.variables or name in self.methods:
            raise VariableExistsError(name)

        variable = self._allocate(variable_type, name)
        self.variables[name] = variable
        if self.scopes:
            self.scopes[-1].variables.append(variable)
        elif self.current_method is not None:
            self.current_method.variables.append(variable)
        return variable

    def _parse_declaration(self, line: str, command_type: CommandType) -> Declaration:
        type_word = first_word(line)
        rest = line[len(type_word):].strip()
        variable_type = VARIABLE_TYPES[type_word]

        assignment_type = classify_operator(rest)
        if assignment_type in ASSIGNMENT_TYPES:
            name, _ = split_assignment(rest, OPERATOR_SYMBOLS[assignment_type])
            variable = self._declare(variable_type, name)
            initializer = self._parse_assignment(rest, assignment_type)
            return Declaration(variable=variable, initializer=initializer)

        if len(line.split()) != 2:
            raise ParameterError(
                f"unexpected text after '{type_word}' declaration",
                hint=f"write '{type_word} name' or '{type_word} name := value'",
            )
        return Declaration(variable=self._declare(variable_type, rest))

    # =========================================================================
    # Blocks
    # =========================================================================

    def _condition(self, line: str, keyword: str) -> Expression:
        start = line.find("[")
        end = line.rfind("]")
        if start < 0 or end < start or line[:start].strip() != keyword or line[end + 1:].strip():
            raise InvalidSyntaxError(
                f"'{keyword}' needs a condition in brackets",
                hint=f"write '{keyword} [condition]'",
            )
        condition = self.resolve(line[start + 1:end])
        if condition.kind == Kind.BYTE:
            raise ParameterError(f"'{keyword}' condition must be a bool")
        return condition

    def _byte_operand(self, line: str, keyword: str) -> Expression:
        text = line[len(keyword):].strip()
        if text.startswith("[") and text.endswith("]"):
            text = text[1:-1].strip()
        if not text:
            raise ParameterError(f"'{keyword}' needs a value")
        value = self.resolve(text)
        if value.kind == Kind.BIT:
            raise ParameterError(f"'{keyword}' needs a byte value")
        return value

    def _expect_bare(self, line: str, keyword: str) -> None:
        if line.split() != [keyword]:
            raise InvalidSyntaxError(f"unexpected text after '{keyword}'")

    def _open_block(self, line: str) -> Block:
        self._expect_bare(line, first_word(line))
        block = Block()
        self.scopes.append(block)
        return block

    def _open_if(self, line: str) -> IfBlock:
        block = IfBlock(condition=self._condition(line, "if"))
        self.scopes.append(block)
        return block

    def _open_while(self, line: str) -> WhileBlock:
        condition = self._condition(line, "while")
        block = WhileBlock(condition=condition, top_label=self.allocator.next_label())
        self.scopes.append(block)
        return block

    def _open_for_til(self, line: str) -> ForTilBlock:
        limit = self._byte_operand(line, "fortil")
        block = ForTilBlock(
            limit=limit,
            register=self.allocator.next_register(),
            top_label=self.allocator.next_label(),
        )
        self.scopes.append(block)
        return block

    def _open_else(self, line: str) -> ElseBlock:
        self._expect_bare(line, "else")
        if not self.scopes or type(self.scopes[-1]) is not IfBlock:
            raise ElseWithoutIfError()

        if_block = self.scopes.pop()
        self._release(if_block.variables)
        if_block.end_label = self.allocator.next_label()
        if_block.else_label = self.allocator.next_label()

        else_block = ElseBlock(if_block=if_block, end_label=if_block.end_label)
        self.scopes.append(else_block)
        return else_block

    def _close_block(self, command_type: CommandType, line: str) -> EndBlock:
        self._expect_bare(line, first_word(line))
        if not self.scopes:
            raise InvalidCommandError(f"'{first_word(line)}' without an open block")
        block = self.scopes[-1]
        if type(block) not in CLOSERS[command_type]:
            raise InvalidSyntaxError(
                f"'{first_word(line)}' cannot close '{block.KEYWORD}' opened at line {block.line + 1}"
            )

        self.scopes.pop()
        self._release(block.variables)
        if isinstance(block, ForTilBlock):
            self.allocator.release_register()
        if block.end_label is None:
            block.end_label = self.allocator.next_label()
        return EndBlock(block=block)

    def _parse_break(self, line: str) -> Break:
        self._expect_bare(line, "break")
        if not self.scopes:
            raise InvalidCommandError("break outside of a block")
        return Break(block=self.scopes[-1])

    # =========================================================================
    # Methods
    # =========================================================================

    def _open_method(self, line: str) -> Method:
        if self.current_method is not None or self.scopes:
            raise InvalidSyntaxError("methods cannot be nested or defined inside a block")
        method = self.methods[SIGNATURE_PATTERN.match(line).group(1)]
        for parameter in method.parameters:
            if parameter.name in self.variables:
                raise VariableExistsError(parameter.name)
            self.variables[parameter.name] = parameter
        self.current_method = method
        return method

    def _close_method(self, line: str) -> EndMethod:
        self._expect_bare(line, "endmethod")
        method = self.current_method
        if method is None:
            raise InvalidCommandError("endmethod without an open method")
        if self.scopes:
            opener = self.scopes[-1]
            raise InvalidSyntaxError(f"'{opener.KEYWORD}' opened at line {opener.line + 1} is not closed")

        self._release(method.variables)
        for parameter in method.parameters:
            self.variables.pop(parameter.name, None)
        self.current_method = None
        return EndMethod(method=method)

    def _parse_return(self, line: str) -> Return:
        if self.current_method is None:
            raise InvalidCommandError("return outside of a method")
        text = line[len("return"):].strip()
        value = self.resolve(text) if text else None
        return Return(method=self.current_method, value=value)

    def _parse_sleep(self, line: str) -> Sleep:
        value = self._byte_operand(line, "sleep")
        return Sleep(value=value, labels=[self.allocator.next_label() for _ in range(Sleep.LABELS)])

    def _parse_call(self, method: Method, argument_text: str) -> MethodCall:
        arguments = split_arguments(argument_text)
        if len(arguments) != len(method.parameters):
            raise ParameterError(
                f"'{method.name}' takes {len(method.parameters)} argument(s), got {len(arguments)}"
            )
        values = []
        for parameter, text in zip(method.parameters, arguments):
            value = self.resolve(text, signed=parameter.signed)
            if value.kind != parameter.kind:
                raise ParameterError(f"wrong argument type for parameter '{parameter.name}'")
            values.append(value)
        return MethodCall(method=method, arguments=values)

    # =========================================================================
    # Assignments
    # =========================================================================

    def _parse_assignment(self, line: str, command_type: CommandType) -> Assignment:
        assignment_class = ASSIGNMENTS[command_type]
        target_text, value_text = split_assignment(line, assignment_class.SYMBOL)
        if not target_text or not value_text:
            raise ParameterError(f"'{assignment_class.SYMBOL}' needs a target and a value")

        bit = None
        if "." in target_text:
            if assignment_class is not Assignment:
                raise ParameterError("only ':=' can assign a single bit")
            target_text, _, bit_text = target_text.partition(".")
            bit = self._bit_index(bit_text)

        target = self.variables.get(target_text.strip())
        if target is None:
            raise InvalidNameError(target_text.strip(), "unknown variable")
        if bit is not None and target.kind != Kind.BYTE:
            raise ParameterError(f"'{target.name}' is not a byte")

        value = self.resolve(value_text, signed=target.signed and bit is None)
        target_kind = Kind.BIT if bit is not None else target.kind
        if value.kind is not None and value.kind != target_kind:
            raise ParameterError(f"cannot assign a {value.kind.name.lower()} to '{target_text.strip()}'")
        if assignment_class.OPERATION is not None and target_kind not in assignment_class.OPERATION.OPERAND_KINDS:
            raise ParameterError(f"'{assignment_class.SYMBOL}' needs a byte target")

        return assignment_class(target=target, value=value, bit=bit)

    @staticmethod
    def _bit_index(text: str) -> int:
        text = text.strip()
        if not DECIMAL_LITERAL.match(text):
            raise ParameterError(f"bit index must be a number, got '{text}'")
        bit = int(text)
        if not 0 <= bit <= 7:
            raise InvalidValueError(text, "0..7")
        return bit

    # =========================================================================
    # Expressions
    # =========================================================================

    def resolve(self, text: str, signed: bool = False) -> Expression:
        """
        Resolve expression text to a variable, constant, call or operation.

        Args:
            text: Normalised expression text
            signed: Read bare numeric literals as signed (cint context)

        Raises:
            InvalidNameError: If the text names nothing known
            ParameterError: If operand kinds do not fit the operator
            InvalidValueError: If a literal is out of range
        """
        text = text.strip()
        if not text:
            raise ParameterError("missing value")

        atom = self._resolve_atom(text, signed)
        if atom is not None:
            return atom

        command_type = classify_operator(text)
        if command_type is None or first_word(text) in KEYWORDS:
            raise InvalidNameError(text, "unknown name")
        if command_type in ASSIGNMENT_TYPES:
            raise ParameterError("an assignment cannot be used as a value")
        return self._resolve_operation(text, command_type, signed)

    def _operand(self, text: str, signed: bool) -> Expression:
        value = self.resolve(text, signed)
        if isinstance(value, MethodCall):
            raise ParameterError("a method call cannot be used as an operand")
        return value

    def _resolve_operation(self, text: str, command_type: CommandType, signed: bool) -> Operation:
        operation_class = OPERATIONS[command_type]
        symbol = OPERATOR_SYMBOLS[command_type]

        if operation_class is Not:
            if not text.startswith("!"):
                raise ParameterError("'!' must precede its operand")
            operation = Not(left=self._operand(text[1:], signed))
        elif operation_class in (Increment, Decrement):
            if text.startswith(symbol):
                name = text[len(symbol):].strip()
            elif text.endswith(symbol):
                name = text[:-len(symbol)].strip()
            else:
                raise ParameterError(f"'{symbol}' needs a single variable")
            operand = self._operand(name, signed)
            if not isinstance(operand, VariableCall) or operand.variable.constant or operand.kind != Kind.BYTE:
                raise ParameterError(f"'{symbol}' needs a byte variable")
            operation = operation_class(left=operand)
        elif operation_class is BitOf:
            parts = split_binary(text, symbol)
            if parts is None:
                raise ParameterError("expected 'name.bit'")
            operand = self._operand(parts[0], signed)
            if operand.kind != Kind.BYTE:
                raise ParameterError("'.' needs a byte operand")
            operation = BitOf(left=operand, bit=self._bit_index(parts[1]))
        else:
            parts = split_binary(text, symbol)
            if parts is None:
                raise ParameterError(f"'{symbol}' needs two operands")
            operand_signed = signed and not issubclass(operation_class, Compare)
            left = self._operand(parts[0], operand_signed)
            right = self._operand(parts[1], operand_signed)
            if left.kind != right.kind or left.kind not in operation_class.OPERAND_KINDS:
                raise ParameterError(f"operands of '{symbol}' have the wrong type")
            operation = operation_class(left=left, right=right)
            if isinstance(operation, Compare):
                operation.signed_compare = left.signed or right.signed

        if operation.UNARY and operation.left.kind not in operation.OPERAND_KINDS:
            raise ParameterError(f"operand of '{symbol}' has the wrong type")
        operation.labels = [self.allocator.next_label() for _ in range(operation.LABELS)]
        return operation

    def _resolve_atom(self, text: str, signed: bool) -> Optional[Expression]:
        """Method call, variable or literal; None if `text` is none of these."""
        match = CALL_PATTERN.match(text)
        if match and match.group(1) in self.methods and _brackets_enclose(text, text.index("[")):
            return self._parse_call(self.methods[match.group(1)], match.group(2))
        if text in self.methods:
            return self._parse_call(self.methods[text], "")

        variable = self.variables.get(text)
        if variable is not None:
            return VariableCall(variable=variable)

        constant = self._parse_literal(text, signed)
        if constant is not None:
            return VariableCall(variable=constant)
        return None

    @staticmethod
    def _parse_literal(text: str, signed: bool) -> Optional[Variable]:
        if text in ("true", "false"):
            return Bool(name=text, constant=True, value=int(text == "true"))

        if HEX_LITERAL.match(text):
            value = int(text, 16)
            if value > 0xFF:
                raise InvalidValueError(text, "0x00..0xff")
            return (Cint if signed else Int)(name=text, constant=True, value=value)

        if DECIMAL_LITERAL.match(text):
            value = int(text)
            if signed or value < 0:
                if not -128 <= value <= 127:
                    raise InvalidValueError(text, "-128..127")
                return Cint(name=text, constant=True, value=value)
            if value > 255:
                raise InvalidValueError(text, "0..255")
            return Int(name=text, constant=True, value=value)

        if len(text) == 3 and text[0] == "'" and text[2] == "'":
            value = ord(text[1])
            if value > 0xFF:
                raise InvalidValueError(text, "0..255")
            return Char(name=text, constant=True, value=value)
        return None
