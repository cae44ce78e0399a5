from typing import Dict, List, Optional

from vmtranslator.command import Command, CommandType, Segment, ArithmeticOp
from vmtranslator.command import SP_BASE, TEMP_ADDR, FRAME_SIZE, ENTRY_POINT, BOOTSTRAP, SCOPE_SEPARATOR
from vmtranslator.errors import DuplicateSymbol
from vmtranslator.utils import lineStrip

# jump condition of D = x - y for each comparison
COMPARISON_JUMPS = {
    ArithmeticOp.EQ: 'JEQ',
    ArithmeticOp.GT: 'JGT',
    ArithmeticOp.LT: 'JLT',
}

# computed in place on M = x (second from top) with D = y (top)
BINARY_COMPS = {
    ArithmeticOp.ADD: 'D+M',
    ArithmeticOp.SUB: 'M-D',
    ArithmeticOp.AND: 'D&M',
    ArithmeticOp.OR: 'D|M',
}

UNARY_COMPS = {
    ArithmeticOp.NEG: '-M',
    ArithmeticOp.NOT: '!M',
}

# caller state saved by call, in push order, page 163
SAVED_REGISTERS = ['LCL', 'ARG', 'THIS', 'THAT']

class CodeGenerator:
    '''
    VM command -> Assembly code

    one generator is owned by one translation pass: it carries the name of the
    most recently declared function (scope for labels and return addresses)
    and the counter used to number return addresses. Commands must be fed in
    scan order.

    references in book:
    'stack': page 141 M[256:2048], SP is R0
    'local': R1, 'argument': R2, 'this': R3, 'that': R4
    'temp': page 142 M[5:13], R13-R15 are free for the translator
    'static': page 141 M[16:256], allocated by the assembler
    '''
    def __init__(self, temp_addr:int=TEMP_ADDR, sp_base:int=SP_BASE):
        self.temp_addr = temp_addr
        self.sp_base = sp_base
        self.current_function: Optional[str] = None # useful for label: func_name$label
        self.n_return = 0 # return addresses handed out so far
        self.declared: Dict[str, str] = {} # label -> module that declared it

    def scope(self, command: Optional[Command]=None)->str:
        '''name prefixing labels: the enclosing function, else the module'''
        if self.current_function is not None:
            return self.current_function
        if command is not None:
            return command.module
        return BOOTSTRAP

    def scoped(self, command: Command)->str:
        'user label as emitted: scope$symbol'
        return f'{self.scope(command)}{SCOPE_SEPARATOR}{command.symbol}'

    def returnLabel(self, command: Optional[Command]=None)->str:
        '''
        scope$ret$n: vm symbols never contain the separator, so unlike a
        user label (scope$symbol) this has it twice and cannot be declared by hand
        '''
        self.n_return += 1
        return f'{self.scope(command)}{SCOPE_SEPARATOR}ret{SCOPE_SEPARATOR}{self.n_return}'

    def _declare(self, label:str, command: Optional[Command]=None)->str:
        '''record a label declaration, every label is declared once per program'''
        module = command.module if command is not None else BOOTSTRAP
        if label in self.declared:
            raise DuplicateSymbol(label, module, self.declared[label],
                                  command.lineno if command is not None else None)
        self.declared[label] = module
        return f'({label})'

    def _assPushD(self)->List[str]:
        '''push D to stack'''
        return lineStrip(
            '''
            @SP
            AM=M+1
            A=A-1
            M=D
            '''
        )

    def _assPushA(self, s)->List[str]:
        '''push A=@s to stack in assembly code'''
        return [
            f'@{s}',
            'D=A',
        ] + self._assPushD()

    def _assPopToD(self)->List[str]:
        'pop stack to D'
        return lineStrip(
            '''
            @SP
            AM=M-1
            D=M
            '''
        )

    def _assPopToR13(self)->List[str]:
        'pop stack into the address held in R13'
        return self._assPopToD() + lineStrip(
            '''
            @R13
            A=M
            M=D
            '''
        )

    def _assArithmetic(self, command: Command)->List[str]:
        # page 130, fig 7.5: stack [.., x, y] -> [.., x op y]
        op = command.operator
        if op.is_unary:
            # mutate the top of stack in place
            return lineStrip(
                f'''
                @SP
                A=M-1
                M={UNARY_COMPS[op]}
                '''
            )

        ass_codes = lineStrip(
            '''
            @SP
            AM=M-1
            D=M
            A=A-1
            '''
        )
        if not op.is_comparison:
            return ass_codes + [f'M={BINARY_COMPS[op]}']

        # true is -1 (all ones) and false is 0; labels are keyed by seq to stay unique
        true_label = f'{op.value}_true.{command.seq}'
        false_label = f'{op.value}_false.{command.seq}'
        return ass_codes + lineStrip(
            f'''
            D=M-D
            @{true_label}
            D;{COMPARISON_JUMPS[op]}
            @SP
            A=M-1
            M=0
            @{false_label}
            0;JMP
            {self._declare(true_label, command)}
            @SP
            A=M-1
            M=-1
            {self._declare(false_label, command)}
            '''
        )

    def _assPush(self, command: Command)->List[str]:
        # page 131: push <segment> index, e.g., push argument 0 // stack.push(argument[0])
        segment, index = command.segment, command.offset

        # load value into D
        if segment is Segment.CONSTANT:
            return self._assPushA(index)
        elif segment.register is not None:
            # local, argument, this, that: D = M[M[base] + index]
            ret = lineStrip(
                f'''
                @{index}
                D=A
                @{segment.register}
                A=D+M
                D=M
                '''
            )
        elif segment is Segment.STATIC:
            # shared by all functions in XXX.vm file: D = M[XXX.{index}]
            ret = [f'@{command.module}.{index}', 'D=M']
        elif segment is Segment.TEMP:
            ret = [f'@{self.temp_addr + index}', 'D=M']
        elif segment is Segment.POINTER:
            # pointer 0 is THIS, pointer 1 is THAT, accessed directly
            ret = [f'@{"THIS" if index == 0 else "THAT"}', 'D=M']
        else:
            assert False, f'unknown segment {segment}'

        return ret + self._assPushD()

    def _assPop(self, command: Command)->List[str]:
        # page 131: pop <segment> index, e.g., pop argment 0 // argment[0] = stack.pop()
        segment, index = command.segment, command.offset

        if segment is Segment.CONSTANT:
            # nothing to store into: the value is discarded
            return self._assPopToD()
        elif segment.register is not None:
            # R13 = M[base] + index; M[R13] = stack.pop()
            return lineStrip(
                f'''
                @{index}
                D=A
                @{segment.register}
                D=D+M
                @R13
                M=D
                '''
            ) + self._assPopToR13()
        elif segment is Segment.STATIC:
            target = f'{command.module}.{index}'
        elif segment is Segment.TEMP:
            target = self.temp_addr + index
        elif segment is Segment.POINTER:
            target = 'THIS' if index == 0 else 'THAT'
        else:
            assert False, f'unknown segment {segment}'

        return self._assPopToD() + [f'@{target}', 'M=D']

    def _assLabel(self, command: Command)->List[str]:
        # page 159: label symbol, scope is within the function
        return [self._declare(self.scoped(command), command)]

    def _assGoto(self, command: Command)->List[str]:
        # page 159: goto label, unconditional jump
        return [f'@{self.scoped(command)}', '0;JMP']

    def _assIf(self, command: Command)->List[str]:
        # page 159: if-goto label, jump if stack.pop() != 0
        return self._assPopToD() + [f'@{self.scoped(command)}', 'D;JNE']

    def _assFunc(self, command: Command)->List[str]:
        # page 163: function f k, where k is num local variables
        self.current_function = command.symbol
        ass_codes = [self._declare(command.symbol, command)]
        for _ in range(command.count):
            ass_codes.extend(self._assPushA(0))
        return ass_codes

    def _assCall(self, function_name:str, n_args:int, command: Optional[Command]=None)->List[str]:
        # page 163: call f n, where f is a function and n is number of arguments
        return_label = self.returnLabel(command)
        ass_codes = [f'/// call ; working with return address {return_label}']
        ass_codes.extend(self._assPushA(return_label))
        # push M[LCL], M[ARG], M[THIS] and M[THAT]
        for register in SAVED_REGISTERS:
            ass_codes.append(f'/// call ; working with {register}')
            ass_codes.extend([f'@{register}', 'D=M'] + self._assPushD())
        # arg = SP - 5 - n_args; 5 b/c we just pushed 5 elements
        ass_codes.extend(lineStrip(
            f'''
            /// call ; ARG = SP - {FRAME_SIZE} - {n_args}
            @SP
            D=M
            @{FRAME_SIZE + n_args}
            D=D-A
            @ARG
            M=D
            /// call ; LCL = SP
            @SP
            D=M
            @LCL
            M=D
            /// call ; goto function {function_name}
            @{function_name}
            0;JMP
            {self._declare(return_label, command)}
            '''
        ))
        return ass_codes

    def _assReturn(self)->List[str]:
        # page 163: return, return control to the caller
        # stack looks like [arguments, ret_addr, prev_lcl, prev_arg, prev_this, prev_that, locals.., value]
        # the return address is saved before M[ARG] is overwritten: with 0 args they share a cell
        ass_codes = lineStrip(
            f'''
            /// return ; frame = LCL
            @LCL
            D=M
            @R13
            M=D
            /// return ; R14 = M[frame - {FRAME_SIZE}]
            @{FRAME_SIZE}
            A=D-A
            D=M
            @R14
            M=D
            /// return ; M[ARG] = stack.pop()
            @SP
            A=M-1
            D=M
            @ARG
            A=M
            M=D
            /// return ; SP = ARG + 1
            @ARG
            D=M+1
            @SP
            M=D
            '''
        )
        # restore that, this, arg, lcl from frame-1 down to frame-4
        for register in reversed(SAVED_REGISTERS):
            ass_codes.extend(lineStrip(
                f'''
                /// return ; {register} = M[--frame]
                @R13
                AM=M-1
                D=M
                @{register}
                M=D
                '''
            ))
        ass_codes.extend(lineStrip(
            '''
            /// return ; goto M[R14]
            @R14
            A=M
            0;JMP
            '''
        ))
        return ass_codes

    def bootstrap(self)->List[str]:
        '''set SP to the stack base and call the entry point'''
        return [
            f'// {BOOTSTRAP} code',
            f'@{self.sp_base}',
            'D=A',
            '@SP',
            'M=D',
            f'// call {ENTRY_POINT} 0',
        ] + self._assCall(ENTRY_POINT, 0)

    def __call__(self, command: Command)->List[str]:
        '''assembly for one command, headed by a comment echoing the vm code'''
        ct = command.type
        ass_codes = [f'// {command.text}']
        if ct is CommandType.C_ARITHMETIC:
            ass_codes.extend(self._assArithmetic(command))
        elif ct is CommandType.C_PUSH:
            ass_codes.extend(self._assPush(command))
        elif ct is CommandType.C_POP:
            ass_codes.extend(self._assPop(command))
        elif ct is CommandType.C_LABEL:
            ass_codes.extend(self._assLabel(command))
        elif ct is CommandType.C_GOTO:
            ass_codes.extend(self._assGoto(command))
        elif ct is CommandType.C_IF:
            ass_codes.extend(self._assIf(command))
        elif ct is CommandType.C_FUNCTION:
            ass_codes.extend(self._assFunc(command))
        elif ct is CommandType.C_RETURN:
            ass_codes.extend(self._assReturn())
        elif ct is CommandType.C_CALL:
            ass_codes.extend(self._assCall(command.symbol, command.count, command))
        else:
            assert False, f'command {ct} not found'
        return ass_codes

    def __repr__(self):
        return f'CodeGenerator(current_function={self.current_function}, n_return={self.n_return})'
