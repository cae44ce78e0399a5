from typing import List, Tuple

from vmtranslator.command import Command, CommandType, ENTRY_POINT, BOOTSTRAP
from vmtranslator.errors import UnresolvedSymbol, DuplicateSymbol

class SymbolTable:
    '''qualified symbol -> (module, seq) of the command declaring it'''
    def __init__(self):
        self.d = {}

    def addEntry(self, symbol:str, command: Command):
        if symbol in self.d:
            first_module, _ = self.d[symbol]
            raise DuplicateSymbol(symbol, command.module, first_module, command.lineno)
        self.d[symbol] = (command.module, command.seq)

    def contains(self, symbol:str)->bool:
        return symbol in self.d

    def getLocation(self, symbol:str)->Tuple[str, int]:
        return self.d[symbol]

    def __len__(self):
        return len(self.d)

    def __repr__(self):
        ret = f'{"symbol":30s}|{"location":20s}\n' + '-' * 51
        for k, (module, seq) in self.d.items():
            ret += f'\n{k:30s}|{module}[{seq}]'
        return ret

def _walk(commands: List[Command]):
    '''yield (label scope, command) the way the code generator scopes labels'''
    current_function = None
    for command in commands:
        if command.type is CommandType.C_FUNCTION:
            current_function = command.symbol
        yield (current_function if current_function is not None else command.module), command

def buildSymbolTables(commands: List[Command])->Tuple[SymbolTable, SymbolTable]:
    '''first pass: collect declared functions and scoped labels'''
    functions, labels = SymbolTable(), SymbolTable()
    for scope, command in _walk(commands):
        if command.type is CommandType.C_FUNCTION:
            functions.addEntry(command.symbol, command)
        elif command.type is CommandType.C_LABEL:
            labels.addEntry(f'{scope}${command.symbol}', command)
    return functions, labels

def resolveSymbols(commands: List[Command], needs_entry_point:bool=False)->Tuple[SymbolTable, SymbolTable]:
    '''
    second pass: every call target must be a declared function and every
    goto / if-goto target a label declared in the same scope
    '''
    functions, labels = buildSymbolTables(commands)
    if needs_entry_point and not functions.contains(ENTRY_POINT):
        raise UnresolvedSymbol(ENTRY_POINT, BOOTSTRAP, f'call {ENTRY_POINT} 0')

    for scope, command in _walk(commands):
        if command.type is CommandType.C_CALL:
            if not functions.contains(command.symbol):
                raise UnresolvedSymbol(command.symbol, command.module, command.text, command.lineno)
        elif command.type in (CommandType.C_GOTO, CommandType.C_IF):
            if not labels.contains(f'{scope}${command.symbol}'):
                raise UnresolvedSymbol(command.symbol, command.module, command.text, command.lineno)
    return functions, labels
