from dataclasses import dataclass
from enum import Enum
from typing import Optional

CommandType = Enum(
    'CommandType',
    ['C_ARITHMETIC', # page 130, fig 7.5: e.g., add, sub, neg ...
     'C_PUSH', # page 131: push <segment> index, e.g., push argument 0 // stack.push(argument[0])
     'C_POP', # page 131: pop <segment> index, e.g., pop argment 0 // argment[0] = stack.pop()
     'C_LABEL', # page 159: label symbol, marks location in code, scope is within the function
     'C_GOTO',  # page 159: goto label, unconditional jump
     'C_IF', # page 159: if-goto label, pc = label if stack.pop() != 0 else pc + 1
     'C_FUNCTION', # page 163: function f k, where k is num local variables
     'C_RETURN', # page 163: return, return control to the caller
     'C_CALL', # page 163: call f n, where f is a function and n is number of arguments
    ]
)

COMMAND_KEYWORDS = {
    'push': CommandType.C_PUSH,
    'pop': CommandType.C_POP,
    'label': CommandType.C_LABEL,
    'goto': CommandType.C_GOTO,
    'if-goto': CommandType.C_IF,
    'function': CommandType.C_FUNCTION,
    'return': CommandType.C_RETURN,
    'call': CommandType.C_CALL,
}

class Segment(Enum):
    CONSTANT = 'constant' # virtual, push only the literal
    LOCAL = 'local' # dynamically allocated per function, page 142 R1
    ARGUMENT = 'argument' # dynamically allocated per function, page 142 R2
    THIS = 'this' # pointer to heap: pointer[0]
    THAT = 'that' # pointer to heap: pointer[1]
    STATIC = 'static' # shared by all functions in the same .vm file, page 141 M[16:256]
    TEMP = 'temp' # shared by all functions, page 142 M[5:13]
    POINTER = 'pointer' # this and that base registers, page 142 M[3:5]

    @property
    def register(self)->Optional[str]:
        'base register symbol of the segment, None for fixed-address segments'
        return {
            Segment.LOCAL: 'LCL',
            Segment.ARGUMENT: 'ARG',
            Segment.THIS: 'THIS',
            Segment.THAT: 'THAT',
        }.get(self)

class ArithmeticOp(Enum):
    ADD = 'add'
    SUB = 'sub'
    NEG = 'neg'
    EQ = 'eq'
    GT = 'gt'
    LT = 'lt'
    AND = 'and'
    OR = 'or'
    NOT = 'not'

    @property
    def is_unary(self)->bool:
        return self in (ArithmeticOp.NEG, ArithmeticOp.NOT)

    @property
    def is_comparison(self)->bool:
        return self in (ArithmeticOp.EQ, ArithmeticOp.GT, ArithmeticOp.LT)

ARITHMETIC_COMMANDS = [op.value for op in ArithmeticOp]
SEGMENTS = [seg.value for seg in Segment]

# hack memory layout, page 141-142
SP_BASE = 256 # first free address above the reserved memory
TEMP_ADDR = 5 # temp segment is M[5:13]
TEMP_SIZE = 8
POINTER_SIZE = 2 # pointer 0 -> THIS, pointer 1 -> THAT
MAX_CONSTANT = (1 << 15) - 1 # largest value an A-instruction can load
FRAME_SIZE = 5 # return address, LCL, ARG, THIS, THAT
ENTRY_POINT = 'Sys.init'
ENTRY_DECLARATION = f'function {ENTRY_POINT} 0'
BOOTSTRAP = 'Bootstrap' # scope and source reference of the code that calls the entry point
SCOPE_SEPARATOR = '$' # joins a scope to its labels, never part of a vm symbol

def getCommandType(keyword: str)->Optional[CommandType]:
    'classify the first token of a vm command, None if it is not a vm keyword'
    if keyword in ARITHMETIC_COMMANDS:
        return CommandType.C_ARITHMETIC
    return COMMAND_KEYWORDS.get(keyword)

# fields each command type must populate, everything else stays None
_FIELDS = {
    CommandType.C_ARITHMETIC: {'operator'},
    CommandType.C_PUSH: {'segment', 'offset'},
    CommandType.C_POP: {'segment', 'offset'},
    CommandType.C_LABEL: {'symbol'},
    CommandType.C_GOTO: {'symbol'},
    CommandType.C_IF: {'symbol'},
    CommandType.C_FUNCTION: {'symbol', 'count'},
    CommandType.C_CALL: {'symbol', 'count'},
    CommandType.C_RETURN: set(),
}

@dataclass(frozen=True)
class Command:
    '''one parsed vm command

    module: sanitized name of the file the command comes from
    text: the command as written (comments and surrounding space removed)
    seq: index unique within the whole linked program, used to name labels
    lineno: 0-based line in the source file, None for synthesized commands
    '''
    module: str
    text: str
    type: CommandType
    seq: int
    segment: Optional[Segment] = None
    offset: Optional[int] = None
    operator: Optional[ArithmeticOp] = None
    symbol: Optional[str] = None
    count: Optional[int] = None
    lineno: Optional[int] = None

    def __post_init__(self):
        required = _FIELDS[self.type]
        for field in ('segment', 'offset', 'operator', 'symbol', 'count'):
            if (getattr(self, field) is not None) != (field in required):
                raise ValueError(f'{self.type.name} command {self.text!r}: field {field} mismatch')

    def __str__(self):
        return self.text
