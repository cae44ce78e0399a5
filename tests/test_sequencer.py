import os
import tempfile
import unittest

from vmtranslator.errors import MissingEntryPoint, DuplicateModule, UsageError
from vmtranslator.sequencer import Module, sanitizeCodes, moduleName, readModule, readModules
from vmtranslator.sequencer import findVMFiles, findEntryPoint, sequenceModules

class TestSanitizeCodes(unittest.TestCase):
    def test_comments_and_blank_lines(self):
        codes = [
            '// header comment\n',
            '\n',
            '   push constant 7   // seven\n',
            '/* block\n',
            'still comment */ push constant 8\n',
            'add /* inline */\n',
            '/* one line */\n',
            'push/**/constant 1\n',
        ]
        lines, linenos = sanitizeCodes(codes)
        self.assertEqual(lines, ['push constant 7', 'push constant 8', 'add', 'push constant 1'])
        self.assertEqual(linenos, [2, 4, 5, 7])

    def test_unterminated_block_comment(self):
        lines, _ = sanitizeCodes(['push constant 1', '/* open', 'push constant 2'])
        self.assertEqual(lines, ['push constant 1'])

class TestModuleName(unittest.TestCase):
    def test_names(self):
        self.assertEqual(moduleName('/tmp/prog/Main.vm'), 'Main')
        self.assertEqual(moduleName('My File.vm'), 'My_File')
        self.assertEqual(moduleName('1st-try.vm'), '_1st_try')
        self.assertEqual(moduleName('a$b.vm'), 'a_b')

def modules(*specs):
    return [Module(name, lines) for name, lines in specs]

class TestSequenceModules(unittest.TestCase):
    def test_entry_module_scanned_last(self):
        ms = modules(
            ('Sys', ['function Sys.init 0', 'call Main.main 0']),
            ('Main', ['function Main.main 0', 'push constant 0', 'return']),
            ('Math', ['function Math.abs 0']),
        )
        self.assertEqual(findEntryPoint(ms), 0)
        ordered, bootstrap = sequenceModules(ms)
        self.assertTrue(bootstrap)
        self.assertEqual([m.name for m in ordered], ['Main', 'Math', 'Sys'])

    def test_missing_entry_point(self):
        ms = modules(('A', ['function A.f 0']), ('B', ['function B.g 0']))
        self.assertIsNone(findEntryPoint(ms))
        with self.assertRaises(MissingEntryPoint):
            sequenceModules(ms)

    def test_single_module_without_entry_point(self):
        ordered, bootstrap = sequenceModules(modules(('Add', ['push constant 1'])))
        self.assertFalse(bootstrap)
        self.assertEqual(len(ordered), 1)

    def test_single_module_with_entry_point(self):
        _, bootstrap = sequenceModules(modules(('Sys', ['function  Sys.init  0'])))
        self.assertTrue(bootstrap)

    def test_duplicate_module_names(self):
        ms = modules(('A', ['function Sys.init 0']), ('A', ['push constant 2', 'pop static 0']))
        with self.assertRaises(DuplicateModule) as cm:
            sequenceModules(ms)
        self.assertEqual(cm.exception.module, 'A')

    def test_similar_declaration_is_not_entry_point(self):
        self.assertIsNone(findEntryPoint(modules(('Sys', ['function Sys.initialize 1']))))

class TestReadModules(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def write(self, relpath, text):
        path = os.path.join(self.tmp.name, relpath)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w') as f:
            f.write(text)
        return path

    def test_read_module(self):
        path = self.write('Main.vm', '// test\npush constant 1\n\npop temp 0\n')
        m = readModule(path)
        self.assertEqual(m.name, 'Main')
        self.assertEqual(m.lines, ['push constant 1', 'pop temp 0'])
        self.assertEqual(m.linenos, [1, 3])
        self.assertEqual(m.path, path)

    def test_duplicate_module_files(self):
        a = self.write('a/Main.vm', 'push constant 1\n')
        b = self.write('b/Main.vm', 'push constant 2\n')
        with self.assertRaises(DuplicateModule) as cm:
            sequenceModules(readModules([a, b]))
        self.assertIn(a, str(cm.exception))
        self.assertIn(b, str(cm.exception))

    def test_undecodable_file(self):
        path = os.path.join(self.tmp.name, 'Bad.vm')
        with open(path, 'wb') as f:
            f.write(b'push constant 1\n\xff\xfe\n')
        with self.assertRaises(UsageError) as cm:
            readModule(path)
        self.assertEqual(cm.exception.module, 'Bad')
        self.assertIn('utf-8', str(cm.exception))

    def test_find_vm_files(self):
        self.write('prog/Sys.vm', '')
        self.write('prog/Main.vm', '')
        self.write('prog/notes.txt', '')
        files = findVMFiles(os.path.join(self.tmp.name, 'prog'))
        self.assertEqual([os.path.basename(f) for f in files], ['Main.vm', 'Sys.vm'])

        single = self.write('Add.vm', '')
        self.assertEqual(findVMFiles(single), [single])

    def test_find_vm_files_errors(self):
        with self.assertRaises(UsageError):
            findVMFiles(os.path.join(self.tmp.name, 'missing.vm'))
        with self.assertRaises(UsageError):
            findVMFiles(self.write('Add.asm', ''))
        os.makedirs(os.path.join(self.tmp.name, 'empty'))
        with self.assertRaises(UsageError):
            findVMFiles(os.path.join(self.tmp.name, 'empty'))

if __name__ == '__main__':
    unittest.main()
