from io import StringIO
from typing import Tuple, List, Dict, Optional, Union, Callable
from enum import Enum

from vmtranslator.utils import pretty_format_dict, dec2bin, isInt
from vmtranslator.utils import binary_flip, binary_and, binary_or, binary_add, binary_neg, WORD_SIZE

CommandType = Enum('CommandType',
                   ['A_COMMAND', # @symbol
                    'C_COMMAND', # dest=comp;jump
                    'L_COMMAND'] # (symbol)
                  )

# page 110 of 'the elements of computing systems': symbol to RAM address
PREDEFINED_SYMBOLS = dict(
    [('SP', 0), ('LCL', 1), ('ARG', 2), ('THIS', 3), ('THAT', 4), ('SCREEN', 16384), ('KBD', 24576)]
    + [(f'R{i}', i) for i in range(16)]
)

class Code:
    '''binary fields of a C command, page 109: 111 a cccccc ddd jjj'''
    dest = {name:dec2bin(i, 3) for i, name in enumerate(['null', 'M', 'D', 'MD', 'A', 'AM', 'AD', 'AMD'])}
    jump = {name:dec2bin(i, 3) for i, name in enumerate(['null', 'JGT', 'JEQ', 'JGE', 'JLT', 'JNE', 'JLE', 'JMP'])}
    comp = {
        '0': '0101010',
        '1': '0111111',
        '-1': '0111010',
        'D': '0001100',
        'A': '0110000',
        '!D': '0001101',
        '!A': '0110001',
        '-D': '0001111',
        '-A': '0110011',
        'D+1': '0011111',
        'A+1': '0110111',
        'D-1': '0001110',
        'A-1': '0110010',
        'D+A': '0000010',
        'D-A': '0010011',
        'A-D': '0000111',
        'D&A': '0000000',
        'D|A': '0010101',
        'M': '1110000',
        '!M': '1110001',
        '-M': '1110011',
        'M+1': '1110111',
        'M-1': '1110010',
        'D+M': '1000010',
        'D-M': '1010011',
        'M-D': '1000111',
        'D&M': '1000000',
        'D|M': '1010101',
    }

    # ALU: (A, M, D) -> output, page 67; M is RAM[A]
    alu = {
        '0': lambda A, M, D: 0,
        '1': lambda A, M, D: 1,
        '-1': lambda A, M, D: -1,
        'D': lambda A, M, D: D,
        'A': lambda A, M, D: A,
        '!D': lambda A, M, D: binary_flip(D, WORD_SIZE),
        '!A': lambda A, M, D: binary_flip(A, WORD_SIZE),
        '-D': lambda A, M, D: binary_neg(D, WORD_SIZE),
        '-A': lambda A, M, D: binary_neg(A, WORD_SIZE),
        'D+1': lambda A, M, D: binary_add(D, 1, WORD_SIZE),
        'A+1': lambda A, M, D: binary_add(A, 1, WORD_SIZE),
        'D-1': lambda A, M, D: binary_add(D, -1, WORD_SIZE),
        'A-1': lambda A, M, D: binary_add(A, -1, WORD_SIZE),
        'D+A': lambda A, M, D: binary_add(D, A, WORD_SIZE),
        'D-A': lambda A, M, D: binary_add(D, -A, WORD_SIZE),
        'A-D': lambda A, M, D: binary_add(A, -D, WORD_SIZE),
        'D&A': lambda A, M, D: binary_and(D, A, WORD_SIZE),
        'D|A': lambda A, M, D: binary_or(D, A, WORD_SIZE),
        'M': lambda A, M, D: M,
        '!M': lambda A, M, D: binary_flip(M, WORD_SIZE),
        '-M': lambda A, M, D: binary_neg(M, WORD_SIZE),
        'M+1': lambda A, M, D: binary_add(M, 1, WORD_SIZE),
        'M-1': lambda A, M, D: binary_add(M, -1, WORD_SIZE),
        'D+M': lambda A, M, D: binary_add(D, M, WORD_SIZE),
        'D-M': lambda A, M, D: binary_add(D, -M, WORD_SIZE),
        'M-D': lambda A, M, D: binary_add(M, -D, WORD_SIZE),
        'D&M': lambda A, M, D: binary_and(D, M, WORD_SIZE),
        'D|M': lambda A, M, D: binary_or(D, M, WORD_SIZE),
    }
    compCode2alu = {code: _alu[name] for _alu, _comp in [(alu, comp)] for name, code in _comp.items()}

    @staticmethod
    def compFun(comp_code):
        assert comp_code in Code.compCode2alu, f'{comp_code} is not a comp code'
        return Code.compCode2alu[comp_code]

class SymbolTable:
    def __init__(self):
        self.d = dict(PREDEFINED_SYMBOLS)

    def addEntry(self, symbol:str, address:int):
        assert symbol not in self.d, f'{symbol} already in symbol table'
        self.d[symbol] = address

    def contains(self, symbol:str):
        return symbol in self.d

    def getAddress(self, symbol:str):
        return self.d[symbol]

class Parser:
    '''
    read assembly commands one at a time, dropping comments and blank lines
    >>> p = Parser(StringIO('@a\\nD=D+M // add\\n'))
    >>> ok, command, lineno = p.advance()
    >>> p.commandType(command), p.symbol(command)
    (<CommandType.A_COMMAND: 1>, 'a')
    '''
    def __init__(self, fs: StringIO):
        self.filestream = fs
        self.machine_code_lineno = 0 # instructions read so far, labels excluded
        self.ass_code_lineno = 0 # assembly lines read so far

    def advance(self)->Tuple[bool, str, int]:
        'return (ok, next command, 0-based line of the command in the assembly)'
        for l in self.filestream:
            self.ass_code_lineno += 1
            l = l.split('//')[0].strip()
            if l == '':
                continue
            if not l.startswith('('):
                self.machine_code_lineno += 1
            return True, l, self.ass_code_lineno - 1
        return False, '', self.ass_code_lineno

    def commandType(self, command):
        if command.startswith('@'):
            return CommandType.A_COMMAND
        if command.startswith('('):
            return CommandType.L_COMMAND
        return CommandType.C_COMMAND

    def symbol(self, command):
        ct = self.commandType(command)
        assert ct != CommandType.C_COMMAND, 'symbol does not apply to C command'
        if ct == CommandType.L_COMMAND:
            assert command.endswith(')'), f'label {command} is not closed'
            return command[1:-1].strip()
        return command[1:].strip()

    def fields(self, command)->Tuple[str, str, str]:
        '''dest=comp;jump -> (dest, comp, jump), missing parts are null'''
        assert self.commandType(command) == CommandType.C_COMMAND, f'{command} is not a C command'
        dest, _, rest = command.rpartition('=')
        comp, _, jump = rest.partition(';')
        # registers may be listed in any order, e.g. ADM is AMD
        dest = ''.join(sorted(dest, key='AMD'.find)) or 'null'
        jump = jump or 'null'
        assert dest in Code.dest, f'{dest} not in dest {list(Code.dest)}'
        assert comp in Code.comp, f'{comp} not in comp {list(Code.comp)}'
        assert jump in Code.jump, f'{jump} not in jump {list(Code.jump)}'
        return dest, comp, jump

    def dest(self, command):
        return self.fields(command)[0]

    def comp(self, command):
        return self.fields(command)[1]

    def jump(self, command):
        return self.fields(command)[2]

# decoded ROM word: an address for A commands, (alu, dest bits, jump bits) for C commands
Instruction = Union[int, Tuple[Callable[[int, int, int], int], str, str]]

class Machine: # hack machine
    def __init__(self, memory_size:int=32768, max_steps:int=100, verbose:bool=False):
        self.memory_size = memory_size
        self.max_steps = max_steps # max runtime allowed
        self.verbose = verbose

    def load(self, machine_code:str, ass_linenos: Optional[List[int]]=None, ram: Optional[Dict[int, int]]=None):
        '''ram: initial RAM contents, address -> value'''
        codes = machine_code.split('\n') if machine_code else []
        self.machine = {
            'PC': 0, # program counter
            'A': 0, # A register
            'D': 0, # D register
            'ROM': codes, # code memory
            'RAM': [0] * self.memory_size,
        }
        for address, value in (ram or {}).items():
            self.machine['RAM'][address] = value
        self.instructions = [self._decode(c) for c in codes]
        self.ass_linenos = ass_linenos # assembly line of each instruction, for tracing

    @property
    def ram(self)->List[int]:
        return self.machine['RAM']

    def _decode(self, code:str)->Instruction:
        # see specification on page 109
        if code[0] == '0':
            return int(code[1:], 2)
        return Code.compFun(code[3:10]), code[10:13], code[13:16]

    def _trace(self, pc:int):
        where = f', assembly_lineno: {self.ass_linenos[pc]}' if self.ass_linenos else ''
        print(f"instr {pc}: {self.machine['ROM'][pc]}{where};",
              f"D: {self.machine['D']}, A: {self.machine['A']}, M[0:5]: {self.machine['RAM'][0:5]}")

    def advance(self)->bool:
        'execute one instruction, False once PC runs past the end of ROM'
        pc = self.machine['PC']
        if pc >= len(self.instructions):
            return False
        if self.verbose:
            self._trace(pc)

        instruction = self.instructions[pc]
        self.machine['PC'] = pc + 1
        if isinstance(instruction, int): # A command: @value
            self.machine['A'] = instruction
            return True

        alu, d, j = instruction
        A = self.machine['A']
        o = alu(A, self.machine['RAM'][A], self.machine['D'])
        # dest bits are A, D, M; page 68
        if d[2] == '1':
            self.machine['RAM'][A] = o
        if d[0] == '1':
            self.machine['A'] = o
        if d[1] == '1':
            self.machine['D'] = o
        # jump bits are <0, =0, >0; page 69
        if (j[0] == '1' and o < 0) or (j[1] == '1' and o == 0) or (j[2] == '1' and o > 0):
            self.machine['PC'] = A
        return True

    def __call__(self, machine_code:str, assembly_linenos: Optional[List[int]]=None,
                 ram: Optional[Dict[int, int]]=None)->int:
        '''run until the program falls off the end of ROM or max_steps; return steps taken'''
        self.load(machine_code, assembly_linenos, ram)
        steps = 0
        while steps < self.max_steps and self.advance():
            steps += 1
        if self.verbose:
            print(f'stopped after {steps} steps, max_steps={self.max_steps}')
        return steps

    def __repr__(self):
        state = {k: self.machine[k] for k in ('PC', 'A', 'D')}
        state['RAM[0:16]'] = self.machine['RAM'][0:16]
        return f'HackMachine(\n{pretty_format_dict(state)}\n)'

class Assembler:
    '''
    two pass hack assembler: the first pass binds (LABEL) to the address of
    the next instruction, the second encodes and allocates variables from free_address
    '''
    def __init__(self, free_address=16):
        self.free_address = free_address

    def _firstPass(self, assembly_code:str):
        self.symbol_table = SymbolTable()
        self.next_address = self.free_address
        parser = Parser(StringIO(assembly_code))
        while True:
            ok, command, _ = parser.advance()
            if not ok: break
            if parser.commandType(command) == CommandType.L_COMMAND:
                self.symbol_table.addEntry(parser.symbol(command), parser.machine_code_lineno)

    def _address(self, symbol:str)->int:
        if isInt(symbol): # e.g., @128
            address = int(symbol)
            assert 0 <= address < (1 << 15), f'{symbol} does not fit in an A command'
            return address
        if not self.symbol_table.contains(symbol): # a variable seen for the first time
            self.symbol_table.addEntry(symbol, self.next_address)
            self.next_address += 1
        return self.symbol_table.getAddress(symbol)

    def __call__(self, assembly_code:str)->Tuple[str, List[int]]:
        '''given ass code, return (machine code, corresponding ass_code_linenos)'''
        self._firstPass(assembly_code)

        parser = Parser(StringIO(assembly_code))
        codes = []
        ass_linenos = []
        while True:
            ok, command, ass_lineno = parser.advance()
            if not ok: break
            ct = parser.commandType(command)
            if ct == CommandType.L_COMMAND:
                continue
            if ct == CommandType.A_COMMAND:
                codes.append(f'0{dec2bin(self._address(parser.symbol(command)), 15)}')
            else:
                dest, comp, jump = parser.fields(command)
                codes.append(f'111{Code.comp[comp]}{Code.dest[dest]}{Code.jump[jump]}')
            ass_linenos.append(ass_lineno)
        return '\n'.join(codes), ass_linenos
