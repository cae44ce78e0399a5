from typing import Optional

class TranslatorError(Exception):
    '''base of every translation failure, always fatal for the run'''
    def __init__(self, message:str, module:Optional[str]=None, lineno:Optional[int]=None):
        super().__init__(message)
        self.message = message
        self.module = module
        self.lineno = lineno # line number in the source file, if known

    def __str__(self)->str:
        where = []
        if self.module is not None:
            where.append(f'module {self.module}')
        if self.lineno is not None:
            where.append(f'line {self.lineno}')
        if not where:
            return f'{type(self).__name__}: {self.message}'
        return f'{type(self).__name__}: {self.message} [{", ".join(where)}]'

class UsageError(TranslatorError): pass
class MissingEntryPoint(TranslatorError): pass
class EmptyProgram(TranslatorError): pass
class DuplicateModule(TranslatorError): pass

class MalformedCommand(TranslatorError):
    'unknown command, wrong arity, unknown segment or bad number'
    def __init__(self, reason:str, module:str, index:int, text:str, lineno:Optional[int]=None):
        super().__init__(f"{reason} in command {index} '{text}'", module, lineno)
        self.reason = reason
        self.index = index # 0-based command index within the module
        self.text = text

class ComparisonMismatch(TranslatorError):
    def __init__(self, cmp_file:str, lineno:int, expected:str, actual:str):
        super().__init__(
            f'{cmp_file}:{lineno} lines are not equal\n'
            f'\t Expected: {expected}\n'
            f'\t Got: {actual}'
        )
        self.cmp_file = cmp_file
        self.lineno = lineno # 1-based line in the reference file
        self.expected = expected
        self.actual = actual

    def __str__(self)->str:
        return f'{type(self).__name__}: {self.message}'

class UnresolvedSymbol(TranslatorError):
    def __init__(self, symbol:str, module:str, text:str, lineno:Optional[int]=None):
        super().__init__(f"unresolved symbol '{symbol}' referenced by '{text}'", module, lineno)
        self.symbol = symbol

class DuplicateSymbol(TranslatorError):
    def __init__(self, symbol:str, module:str, first_module:str, lineno:Optional[int]=None):
        super().__init__(f"symbol '{symbol}' already declared in module {first_module}", module, lineno)
        self.symbol = symbol
