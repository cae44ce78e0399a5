import argparse
import os
import sys
from typing import List, Optional, Tuple

from vmtranslator.assembler import Assembler, Machine
from vmtranslator.codegen import CodeGenerator
from vmtranslator.command import Command, BOOTSTRAP
from vmtranslator.errors import TranslatorError, UsageError, EmptyProgram, ComparisonMismatch
from vmtranslator.parser import Parser
from vmtranslator.resolver import resolveSymbols
from vmtranslator.sequencer import Module, findVMFiles, readModules, sequenceModules
from vmtranslator.utils import pretty_format_dict

class Translator:
    '''VM code -> Assembly code

    links every module of a program into one assembly listing:
    >>> assembly, refs = Translator()(['Main.vm', 'Sys.vm'])
    refs[i] is the (module, source lineno) assembly line i was generated from
    '''
    def __init__(self, strict:bool=False, check_symbols:bool=False, verbose:bool=False):
        self.strict = strict # reject pop constant
        self.check_symbols = check_symbols # resolve call / goto targets before generating
        self.verbose = verbose

    def load(self, vm_fnames: List[str]):
        self.loadModules(readModules(vm_fnames))

    def loadModules(self, modules: List[Module]):
        self.modules, self.needs_bootstrap = sequenceModules(modules)
        if self.verbose:
            print('modules sequenced')
            print('==============')
            print(pretty_format_dict({m.name: m.lines for m in self.modules}))

        # seq numbers run over the whole program in scan order
        self.commands: List[Command] = []
        for module in self.modules:
            self.commands.extend(Parser(module, len(self.commands), self.strict))
        if len(self.commands) == 0:
            raise EmptyProgram('no vm commands found in ' + ', '.join(m.name for m in self.modules))

        if self.check_symbols:
            functions, labels = resolveSymbols(self.commands, self.needs_bootstrap)
            if self.verbose:
                print('symbol table')
                print(functions)
                print(labels)

        self.generator = CodeGenerator()
        self.pc = 0 # next command to generate
        self.bootstrapped = not self.needs_bootstrap

    def __repr__(self):
        ret = ['VM translator(']
        for command in self.commands:
            ret.append(f'({command.module}, {command.lineno}, {command.type.name}): {command.text}')
        return "\n".join(ret + [')'])

    def advance(self)->Tuple[bool, List[str], Tuple[str, Optional[int]]]:
        '''
        return (ok, assembly codes for the next command, reference_line_in_orig_file)
        the bootstrap, when needed, comes before the first command
        '''
        if not self.bootstrapped:
            self.bootstrapped = True
            return True, self.generator.bootstrap(), (BOOTSTRAP, None)

        if self.pc >= len(self.commands):
            return False, [], ("", None)

        command = self.commands[self.pc]
        self.pc += 1
        if self.verbose:
            print(f'instruction from {command.module}[{command.lineno}]: {command.text}, type: {command.type.name}')
        return True, self.generator(command), (command.module, command.lineno)

    def _generate(self)->Tuple[str, List[Tuple[str, Optional[int]]]]:
        codes = []
        tgtRef2srcRef = []
        while True:
            ok, ass_codes, ref = self.advance()
            if not ok: break
            codes.extend(ass_codes)
            tgtRef2srcRef.extend([ref] * len(ass_codes))
        return '\n'.join(codes), tgtRef2srcRef

    def translateModules(self, modules: List[Module])->Tuple[str, List[Tuple[str, Optional[int]]]]:
        self.loadModules(modules)
        return self._generate()

    def __call__(self, vm_fnames: List[str])->Tuple[str, List[Tuple[str, Optional[int]]]]:
        '''
        given vm code in vm_fnames,
        return (assembly_code, vm_code_lines that corresponds to assembly_code for debug)
        '''
        self.load(vm_fnames)
        return self._generate()

def writeLines(path:str, lines: List[str]):
    with open(path, 'w') as f:
        for l in lines:
            f.write(l + '\n')

def compareLines(lines: List[str], cmp_file:str):
    '''raise ComparisonMismatch at the first line differing from the reference file'''
    with open(cmp_file) as f:
        expected = [l.strip() for l in f.read().splitlines()]
    actual = [l.strip() for l in lines]
    for i, (e, a) in enumerate(zip(expected, actual)):
        if e != a:
            raise ComparisonMismatch(cmp_file, i+1, e, a)
    if len(expected) != len(actual):
        n = min(len(expected), len(actual))
        raise ComparisonMismatch(
            cmp_file, n+1,
            expected[n] if n < len(expected) else '<end of file>',
            actual[n] if n < len(actual) else '<end of file>',
        )

def outputPath(source:str)->str:
    '''Foo/ -> Foo/Foo.asm, Foo/Bar.vm -> Foo/Bar.asm'''
    source = os.path.normpath(source)
    if os.path.isdir(source):
        return os.path.join(source, os.path.basename(os.path.abspath(source)) + '.asm')
    return os.path.splitext(source)[0] + '.asm'

def simulate(assembly:str, max_steps:int, verbose:bool=False)->Machine:
    '''assemble the output and run it on the hack machine emulator'''
    machine_code, ass_linenos = Assembler()(assembly)
    machine = Machine(max_steps=max_steps, verbose=verbose)
    machine(machine_code, ass_linenos)
    return machine

class _ArgumentParser(argparse.ArgumentParser):
    # usage errors exit with 1, translation errors with 2
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f'{self.prog}: error: {message}\n')

def getArgParser()->argparse.ArgumentParser:
    ap = _ArgumentParser(prog='vmtranslator', description='translate VM code into Hack assembly')
    ap.add_argument('-s', '--source', required=True,
                    help='source file in vm extension (e.g. Add.vm or a directory with multiple vm files)')
    ap.add_argument('-o', '--output', help='output .asm file, defaults to next to the source')
    ap.add_argument('-c', '--compare', help='reference .asm file the output must match line by line')
    ap.add_argument('--strict', action='store_true', help='reject pop constant')
    ap.add_argument('--check-symbols', action='store_true', help='fail on undefined call / goto targets')
    ap.add_argument('--simulate', type=int, metavar='STEPS',
                    help='run the output on the hack emulator for at most STEPS instructions')
    ap.add_argument('-v', '--verbose', action='store_true')
    return ap

def main(argv: Optional[List[str]]=None)->int:
    args = getArgParser().parse_args(argv)
    try:
        vm_fnames = findVMFiles(args.source)
    except UsageError as e:
        print(e, file=sys.stderr)
        return 1

    dst_file = args.output or outputPath(args.source)
    try:
        translator = Translator(strict=args.strict, check_symbols=args.check_symbols, verbose=args.verbose)
        assembly, _ = translator(vm_fnames)
        lines = assembly.split('\n')
        writeLines(dst_file, lines)
        print('Successfully wrote to destination file:', dst_file)

        if args.compare:
            compareLines(lines, args.compare)
            print('Successfully compared files')

        if args.simulate is not None:
            machine = simulate(assembly, args.simulate, args.verbose)
            print(machine)
    except UsageError as e:
        # an input file that cannot be read as vm text
        print(e, file=sys.stderr)
        return 1
    except TranslatorError as e:
        print(e, file=sys.stderr)
        return 2
    except OSError as e:
        print(f'Error: {e}', file=sys.stderr)
        return 2
    return 0

if __name__ == '__main__':
    sys.exit(main())
