from typing import Optional, Tuple

from vmtranslator.command import Command, CommandType, Segment, ArithmeticOp, getCommandType
from vmtranslator.command import TEMP_SIZE, POINTER_SIZE, MAX_CONSTANT, SCOPE_SEPARATOR
from vmtranslator.errors import MalformedCommand
from vmtranslator.sequencer import Module
from vmtranslator.utils import isNat

# number of tokens after the keyword
ARITY = {
    CommandType.C_ARITHMETIC: 0,
    CommandType.C_PUSH: 2,
    CommandType.C_POP: 2,
    CommandType.C_LABEL: 1,
    CommandType.C_GOTO: 1,
    CommandType.C_IF: 1,
    CommandType.C_FUNCTION: 2,
    CommandType.C_CALL: 2,
    CommandType.C_RETURN: 0,
}

# exclusive upper bound on offsets for segments with a fixed size
SEGMENT_LIMIT = {
    Segment.TEMP: TEMP_SIZE,
    Segment.POINTER: POINTER_SIZE,
    Segment.CONSTANT: MAX_CONSTANT + 1,
}

def parseCommand(line:str, module:str, seq:int, index:Optional[int]=None,
                 lineno:Optional[int]=None, strict:bool=False)->Command:
    '''
    parse one cleaned vm line into a Command

    seq: program-wide sequence index of the command
    index: 0-based index of the command within its module, defaults to seq
    strict: reject "pop constant n" instead of treating it as a discard
    >>> parseCommand('push local 2', 'Main', 0).segment
    <Segment.LOCAL: 'local'>
    '''
    index = seq if index is None else index

    def fail(reason:str):
        return MalformedCommand(reason, module, index, line, lineno)

    parts = line.split()
    if not 1 <= len(parts) <= 3:
        raise fail(f'invalid instruction length: {len(parts)}')

    keyword, args = parts[0], parts[1:]
    ct = getCommandType(keyword)
    if ct is None:
        raise fail(f'invalid command type: {keyword}')
    if len(args) != ARITY[ct]:
        raise fail(f'{keyword} expects {ARITY[ct]} argument(s), got {len(args)}')

    text = ' '.join(parts)
    if ct is CommandType.C_ARITHMETIC:
        return Command(module, text, ct, seq, operator=ArithmeticOp(keyword), lineno=lineno)
    if ct is CommandType.C_RETURN:
        return Command(module, text, ct, seq, lineno=lineno)
    if ct not in (CommandType.C_PUSH, CommandType.C_POP) and SCOPE_SEPARATOR in args[0]:
        # reserved for the labels the translator builds
        raise fail(f'reserved character {SCOPE_SEPARATOR} in symbol: {args[0]}')
    if ct in (CommandType.C_LABEL, CommandType.C_GOTO, CommandType.C_IF):
        return Command(module, text, ct, seq, symbol=args[0], lineno=lineno)

    if not isNat(args[1]):
        raise fail(f'invalid numeric argument: {args[1]}')
    n = int(args[1])

    if ct in (CommandType.C_FUNCTION, CommandType.C_CALL):
        return Command(module, text, ct, seq, symbol=args[0], count=n, lineno=lineno)

    # push / pop
    try:
        segment = Segment(args[0])
    except ValueError:
        raise fail(f'invalid segment type: {args[0]}') from None
    if segment in SEGMENT_LIMIT and n >= SEGMENT_LIMIT[segment]:
        raise fail(f'{segment.value} offset {n} out of range 0..{SEGMENT_LIMIT[segment]-1}')
    if strict and ct is CommandType.C_POP and segment is Segment.CONSTANT:
        raise fail('cannot pop to constant')
    return Command(module, text, ct, seq, segment=segment, offset=n, lineno=lineno)

class Parser:
    '''turn the cleaned lines of one module into Commands, one per advance'''

    def __init__(self, module: Module, first_seq:int=0, strict:bool=False):
        self.module = module
        self.strict = strict
        self.first_seq = first_seq
        self.index = 0 # next command within the module

    def advance(self)->Tuple[bool, Optional[Command]]:
        'return (ok, next command)'
        if self.index >= len(self.module.lines):
            return False, None
        i = self.index
        self.index += 1
        return True, parseCommand(self.module.lines[i], self.module.name,
                                  self.first_seq + i, index=i,
                                  lineno=self.module.linenos[i], strict=self.strict)

    def __iter__(self):
        while True:
            ok, command = self.advance()
            if not ok: break
            yield command
