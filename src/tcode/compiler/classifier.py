"""
TCode Line Classifier
=====================

TCode has no token stream: every source line is one command, and the
kind of command is decided from the line text alone. This module
normalises raw lines and maps each one to a CommandType.

Classification
--------------
1. Split off the first word (on whitespace or '['). If it is a keyword,
   the keyword decides the command type.
2. Otherwise search the line for operator symbols in the fixed priority
   order below. The first symbol present decides the command type.
3. A line with no keyword and no operator is a bare reference: a
   variable, a constant or a method call.

Operator Priority
-----------------
| Priority | Symbols                            | Meaning            |
|----------|------------------------------------|--------------------|
| 1        | := += -= *= /= %= &= |=            | assignment         |
| 2        | & |                                | logic              |
| 3        | != ++ -- << >>                     | two-char operators |
| 4        | > < =                              | comparison         |
| 5        | + - * / %                          | arithmetic         |
| 6        | !                                  | not                |
| 7        | .                                  | bit of byte        |

The order matters: a line containing "+=" must never be taken for an
addition, and "!=" must be found before "!". A symbol found earlier in
the table binds more loosely, so "a + 1 > b" compares a sum.

Symbols are only recognised outside character literals and outside the
square brackets of method calls and conditions.
"""

import re
from enum import Enum, auto
from typing import Iterator, Optional


# =============================================================================
# Command Types
# =============================================================================

class CommandType(Enum):
    """Category of a source line as decided by the classifier."""

    EMPTY = auto()
    REFERENCE = auto()          # variable, constant or method call

    # === Declarations ===
    BOOL = auto()
    CHAR = auto()
    INT = auto()
    CINT = auto()

    # === Blocks ===
    BLOCK = auto()
    END_BLOCK = auto()
    IF = auto()
    ELSE = auto()
    END_IF = auto()
    WHILE = auto()
    END_WHILE = auto()
    FOR_TIL = auto()
    END_FOR_TIL = auto()
    BREAK = auto()

    # === Methods ===
    METHOD = auto()
    END_METHOD = auto()
    RETURN = auto()

    # === Other Statements ===
    SLEEP = auto()
    INCLUDE = auto()
    INTERRUPT = auto()

    # === Assignments ===
    ASSIGNMENT = auto()         # :=
    ADD_ASSIGNMENT = auto()     # +=
    SUBTRACT_ASSIGNMENT = auto()  # -=
    MULTIPLY_ASSIGNMENT = auto()  # *=
    DIVIDE_ASSIGNMENT = auto()  # /=
    MODULO_ASSIGNMENT = auto()  # %=
    AND_ASSIGNMENT = auto()     # &=
    OR_ASSIGNMENT = auto()      # |=

    # === Operators ===
    AND = auto()                # &
    OR = auto()                 # |
    UNEQUAL = auto()            # !=
    INCREMENT = auto()          # ++
    DECREMENT = auto()          # --
    SHIFT_LEFT = auto()         # <<
    SHIFT_RIGHT = auto()        # >>
    BIGGER = auto()             # >
    SMALLER = auto()            # <
    EQUAL = auto()              # =
    ADD = auto()                # +
    SUBTRACT = auto()           # -
    MULTIPLY = auto()           # *
    DIVIDE = auto()             # /
    MODULO = auto()             # %
    NOT = auto()                # !
    BIT_OF = auto()             # .


KEYWORDS: dict[str, CommandType] = {
    "bool": CommandType.BOOL,
    "char": CommandType.CHAR,
    "int": CommandType.INT,
    "cint": CommandType.CINT,
    "block": CommandType.BLOCK,
    "{": CommandType.BLOCK,
    "endblock": CommandType.END_BLOCK,
    "}": CommandType.END_BLOCK,
    "if": CommandType.IF,
    "else": CommandType.ELSE,
    "endif": CommandType.END_IF,
    "while": CommandType.WHILE,
    "endwhile": CommandType.END_WHILE,
    "fortil": CommandType.FOR_TIL,
    "endfortil": CommandType.END_FOR_TIL,
    "break": CommandType.BREAK,
    "method": CommandType.METHOD,
    "endmethod": CommandType.END_METHOD,
    "return": CommandType.RETURN,
    "sleep": CommandType.SLEEP,
    "include": CommandType.INCLUDE,
    "interrupt": CommandType.INTERRUPT,
}

RESERVED_WORDS = frozenset(k for k in KEYWORDS if k.isalpha()) | {"true", "false"}

# Highest priority first; see module docstring
OPERATOR_PRIORITY: list[tuple[str, CommandType]] = [
    (":=", CommandType.ASSIGNMENT),
    ("+=", CommandType.ADD_ASSIGNMENT),
    ("-=", CommandType.SUBTRACT_ASSIGNMENT),
    ("*=", CommandType.MULTIPLY_ASSIGNMENT),
    ("/=", CommandType.DIVIDE_ASSIGNMENT),
    ("%=", CommandType.MODULO_ASSIGNMENT),
    ("&=", CommandType.AND_ASSIGNMENT),
    ("|=", CommandType.OR_ASSIGNMENT),
    ("&", CommandType.AND),
    ("|", CommandType.OR),
    ("!=", CommandType.UNEQUAL),
    ("++", CommandType.INCREMENT),
    ("--", CommandType.DECREMENT),
    ("<<", CommandType.SHIFT_LEFT),
    (">>", CommandType.SHIFT_RIGHT),
    (">", CommandType.BIGGER),
    ("<", CommandType.SMALLER),
    ("=", CommandType.EQUAL),
    ("+", CommandType.ADD),
    ("-", CommandType.SUBTRACT),
    ("*", CommandType.MULTIPLY),
    ("/", CommandType.DIVIDE),
    ("%", CommandType.MODULO),
    ("!", CommandType.NOT),
    (".", CommandType.BIT_OF),
]

OPERATOR_SYMBOLS = {command_type: symbol for symbol, command_type in OPERATOR_PRIORITY}

ASSIGNMENT_TYPES = frozenset(command_type for _, command_type in OPERATOR_PRIORITY[:8])

OPERATOR_CHARS = frozenset(":+-*/%&|!<>=.")

NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")

# Jump labels (l1, l2, ...), method labels (M1, M2, ...) and the entry point
GENERATED_NAME_PATTERN = re.compile(r"^(?:[lm]\d+|main)$")


# =============================================================================
# Line Normalisation
# =============================================================================

def normalize_line(raw: str) -> str:
    """
    Strip the comment, surrounding whitespace and case from a source line.

    Character literals are left alone, so ';' and 'A' survive.

    >>> normalize_line("  X := 'A'  ; set x")
    "x := 'A'"
    """
    result = []
    in_literal = False
    for char in raw:
        if char == "'":
            in_literal = not in_literal
        elif char == ";" and not in_literal:
            break
        result.append(char if in_literal else char.lower())
    return "".join(result).strip()


def is_valid_name(name: str) -> bool:
    """
    Check that a name starts with a letter, is not a reserved word and
    cannot be mistaken for a label the generator emits.
    """
    return (
        bool(NAME_PATTERN.match(name))
        and name not in RESERVED_WORDS
        and not GENERATED_NAME_PATTERN.match(name)
    )


# =============================================================================
# Operator Search
# =============================================================================

def _top_level_positions(text: str, symbol: str) -> Iterator[int]:
    """Yield every index of `symbol` outside literals and brackets."""
    depth = 0
    in_literal = False
    i = 0
    while i < len(text):
        char = text[i]
        if char == "'":
            in_literal = not in_literal
        elif not in_literal:
            if char == "[":
                depth += 1
            elif char == "]":
                depth -= 1
            elif depth == 0 and text.startswith(symbol, i):
                yield i
        i += 1


def contains_operator(text: str, symbol: str) -> bool:
    return next(_top_level_positions(text, symbol), None) is not None


def split_assignment(text: str, symbol: str) -> Optional[tuple[str, str]]:
    """Split an assignment on the first occurrence of its symbol."""
    for position in _top_level_positions(text, symbol):
        return text[:position].strip(), text[position + len(symbol):].strip()
    return None


def split_binary(text: str, symbol: str) -> Optional[tuple[str, str]]:
    """
    Split an expression on the last usable occurrence of a binary operator.

    An occurrence is usable when the text to its left is non-empty and
    does not itself end with an operator symbol. Taking the last one makes
    operators left associative, and the rule keeps "x > -5" in one piece.
    """
    for position in reversed(list(_top_level_positions(text, symbol))):
        left = text[:position].rstrip()
        if left and left[-1] not in OPERATOR_CHARS:
            return left, text[position + len(symbol):].strip()
    return None


# =============================================================================
# Classification
# =============================================================================

def first_word(line: str) -> str:
    """First whitespace- or bracket-delimited word of a line."""
    words = re.split(r"[\s\[]+", line, maxsplit=1)
    return words[0] if words else ""


def classify_operator(text: str) -> Optional[CommandType]:
    """Return the type of the highest-priority operator in `text`, if any."""
    for symbol, command_type in OPERATOR_PRIORITY:
        if contains_operator(text, symbol):
            return command_type
    return None


def classify(line: str) -> CommandType:
    """
    Classify a normalised source line.

    Args:
        line: A line already passed through normalize_line()

    Returns:
        The CommandType deciding how the parser handles the line
    """
    if not line:
        return CommandType.EMPTY

    keyword = KEYWORDS.get(first_word(line))
    if keyword is not None:
        return keyword

    operator = classify_operator(line)
    if operator is not None:
        return operator
    return CommandType.REFERENCE
