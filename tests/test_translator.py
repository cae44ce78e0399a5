import os
import tempfile
import unittest

from vmtranslator.assembler import Assembler, Machine
from vmtranslator.errors import EmptyProgram, ComparisonMismatch, UnresolvedSymbol, MalformedCommand
from vmtranslator.errors import DuplicateModule
from vmtranslator.sequencer import Module
from vmtranslator.translator import Translator, writeLines, compareLines, outputPath

SYS_VM = '''
// entry point
function Sys.init 0
push constant 6
call Main.fibonacci 1
pop temp 0
push constant 4
pop static 0
label END
goto END
'''

MAIN_VM = '''
// fib(n) = n if n < 2 else fib(n-2) + fib(n-1)
function Main.fibonacci 0
push argument 0
push constant 2
lt
if-goto IF_TRUE
goto IF_FALSE
label IF_TRUE
push argument 0
return
label IF_FALSE
push argument 0
push constant 2
sub
call Main.fibonacci 1
push argument 0
push constant 1
sub
call Main.fibonacci 1
add
return
'''

def module(name, text):
    return Module(name, [l for l in text.split('\n') if l.strip() and not l.startswith('//')])

class TestTranslator(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def write(self, name, text):
        path = os.path.join(self.tmp.name, name)
        with open(path, 'w') as f:
            f.write(text)
        return path

    def test_fibonacci_program(self):
        paths = [self.write('Sys.vm', SYS_VM), self.write('Main.vm', MAIN_VM)]
        assembly, refs = Translator(verbose=False)(paths)
        lines = assembly.split('\n')
        self.assertEqual(len(lines), len(refs))
        self.assertEqual(lines[0], '// Bootstrap code')
        self.assertEqual(refs[0], ('Bootstrap', None))

        machine_code, linenos = Assembler()(assembly)
        machine = Machine(max_steps=50000)
        machine(machine_code, linenos)
        self.assertEqual(machine.ram[5], 8) # temp 0
        self.assertEqual(machine.ram[16], 4) # Sys.0, the only static

    def test_entry_module_scanned_last(self):
        translator = Translator(verbose=False)
        assembly, refs = translator.translateModules([module('Sys', SYS_VM), module('Main', MAIN_VM)])
        self.assertEqual([m.name for m in translator.modules], ['Main', 'Sys'])
        modules_in_order = []
        for name, _ in refs:
            if not modules_in_order or modules_in_order[-1] != name:
                modules_in_order.append(name)
        self.assertEqual(modules_in_order, ['Bootstrap', 'Main', 'Sys'])

        # seq numbers follow scan order: Main's lt is the fourth command overall
        self.assertIn('(lt_true.3)', assembly.split('\n'))

    def test_callee_module_follows_bootstrap(self):
        a = module('A', 'function A.run 0\ncall B.helper 0\nreturn')
        b = module('B', 'function Sys.init 0\ncall A.run 0\nlabel END\ngoto END\nfunction B.helper 0\npush constant 3\nreturn')
        lines = Translator(verbose=False).translateModules([a, b])[0].split('\n')
        bootstrap_jump = lines.index('@Sys.init')
        self.assertLess(bootstrap_jump, lines.index('(Sys.init)'))
        self.assertLess(lines.index('(A.run)'), lines.index('(Sys.init)'))
        self.assertLess(lines.index('(Sys.init)'), lines.index('(B.helper)'))

    def test_single_fragment_has_no_bootstrap(self):
        lines = Translator(verbose=False).translateModules([module('Add', 'push constant 1')])[0].split('\n')
        self.assertEqual(lines, ['// push constant 1', '@1', 'D=A', '@SP', 'AM=M+1', 'A=A-1', 'M=D'])

    def test_statics_are_private_per_module(self):
        a = module('A', 'function Sys.init 0\npush constant 1\npop static 0')
        b = module('B', 'push constant 2\npop static 0')
        lines = Translator(verbose=False).translateModules([a, b])[0].split('\n')
        self.assertIn('@A.0', lines)
        self.assertIn('@B.0', lines)

    def test_module_names_must_be_unique(self):
        a = module('A', 'function Sys.init 0\npush constant 1\npop static 0')
        b = module('A', 'push constant 2\npop static 0')
        with self.assertRaises(DuplicateModule):
            Translator().translateModules([a, b])

    def test_empty_program(self):
        with self.assertRaises(EmptyProgram):
            Translator(verbose=False)([self.write('Empty.vm', '// nothing here\n\n')])

    def test_malformed_command_aborts(self):
        with self.assertRaises(MalformedCommand) as cm:
            Translator(verbose=False)([self.write('Bad.vm', 'push constant 1\npush nowhere 1\n')])
        self.assertEqual(cm.exception.module, 'Bad')
        self.assertEqual(cm.exception.index, 1)
        self.assertEqual(cm.exception.lineno, 1)

    def test_unresolved_symbols(self):
        fragment = [module('Main', 'function Main.f 0\ncall Missing.g 0\nreturn')]
        # dangling targets pass through unless symbols are checked
        assembly, _ = Translator(verbose=False).translateModules(fragment)
        self.assertIn('@Missing.g', assembly.split('\n'))
        with self.assertRaises(UnresolvedSymbol):
            Translator(check_symbols=True, verbose=False).translateModules(fragment)

    def test_verbose(self):
        # smoke test for the diagnostics path
        from contextlib import redirect_stdout
        from io import StringIO
        out = StringIO()
        with redirect_stdout(out):
            Translator(check_symbols=True, verbose=True).translateModules([module('Add', 'push constant 1')])
        self.assertIn('push constant 1', out.getvalue())

        out = StringIO()
        with redirect_stdout(out):
            Translator().translateModules([module('Add', 'push constant 1')])
        self.assertEqual(out.getvalue(), '')

class TestOutput(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.cmp_file = os.path.join(self.tmp.name, 'Ref.cmp')

    def test_write_and_compare(self):
        lines = ['// push constant 1', '@1', 'D=A']
        writeLines(self.cmp_file, lines)
        with open(self.cmp_file) as f:
            self.assertEqual(f.read(), '// push constant 1\n@1\nD=A\n')
        compareLines(lines, self.cmp_file)

    def test_compare_ignores_surrounding_whitespace(self):
        writeLines(self.cmp_file, ['  @1  ', 'D=A'])
        compareLines(['@1', 'D=A'], self.cmp_file)

    def test_compare_reports_first_differing_line(self):
        writeLines(self.cmp_file, ['@1', 'D=A', '@SP', 'M=D'])
        with self.assertRaises(ComparisonMismatch) as cm:
            compareLines(['@1', 'D=A', '@LCL', 'M=D'], self.cmp_file)
        self.assertEqual(cm.exception.lineno, 3)
        self.assertEqual(cm.exception.expected, '@SP')
        self.assertEqual(cm.exception.actual, '@LCL')

    def test_compare_line_count(self):
        writeLines(self.cmp_file, ['@1', 'D=A'])
        with self.assertRaises(ComparisonMismatch) as cm:
            compareLines(['@1', 'D=A', 'M=D'], self.cmp_file)
        self.assertEqual(cm.exception.lineno, 3)

    def test_output_path(self):
        prog = os.path.join(self.tmp.name, 'FibonacciElement')
        os.makedirs(prog)
        self.assertEqual(outputPath(prog), os.path.join(prog, 'FibonacciElement.asm'))
        self.assertEqual(outputPath(prog + os.sep), os.path.join(prog, 'FibonacciElement.asm'))
        self.assertEqual(outputPath(os.path.join(prog, 'Main.vm')), os.path.join(prog, 'Main.asm'))

if __name__ == '__main__':
    unittest.main()
