import os
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from vmtranslator.command import ENTRY_DECLARATION
from vmtranslator.errors import UsageError, MissingEntryPoint, DuplicateModule

VM_EXTENSION = '.vm'

@dataclass
class Module:
    '''one vm source file: name is used to prefix static variables'''
    name: str
    lines: List[str]
    linenos: List[int] = field(default_factory=list) # 0-based line in the source file
    path: Optional[str] = None

    def __post_init__(self):
        if not self.linenos:
            self.linenos = list(range(len(self.lines)))
        assert len(self.linenos) == len(self.lines), 'every line needs a source lineno'

def sanitizeCodes(codes: List[str],
                  line_comment:str='//',
                  multi_line_comment_open:str='/*',
                  multi_line_comment_close:str='*/')->Tuple[List[str], List[int]]:
    '''
    strip out comments e.g. // or /* comment */ and blank lines
    return (a list of command that are sanitized without comments, linenos in orignal code)
    '''
    sanitized_codes, linenos = [], []
    in_comment = False # are you in multi line comment /* */?
    for lineno, l in enumerate(codes):
        kept = ''
        while l:
            if in_comment:
                if multi_line_comment_close not in l:
                    # comment continue to open, ignore the rest of the line
                    break
                l = l[l.index(multi_line_comment_close)+len(multi_line_comment_close):]
                in_comment = False
                continue
            starts = [i for i in (l.find(line_comment), l.find(multi_line_comment_open)) if i >= 0]
            if not starts:
                kept += l
                break
            i = min(starts)
            kept += l[:i] + ' '
            if l.startswith(line_comment, i):
                break
            l = l[i+len(multi_line_comment_open):]
            in_comment = True

        kept = kept.strip()
        if kept != "":
            sanitized_codes.append(kept)
            linenos.append(lineno)
    return sanitized_codes, linenos

def moduleName(path:str)->str:
    '''file name without extension, made safe to prefix assembly symbols'''
    name = os.path.splitext(os.path.basename(path))[0]
    # $ joins scopes and labels in the output, so it is not kept either
    name = re.sub(r'[^A-Za-z0-9_.:]', '_', name)
    if name == '' or name[0].isdigit():
        name = '_' + name
    return name

def readModule(path:str)->Module:
    name = moduleName(path)
    try:
        with open(path, encoding='utf-8') as f:
            lines, linenos = sanitizeCodes(f.readlines())
    except UnicodeDecodeError as e:
        raise UsageError(f'{path} is not utf-8 text: {e.reason} at byte {e.start}', name) from e
    return Module(name, lines, linenos, path)

def readModules(paths: List[str])->List[Module]:
    return [readModule(path) for path in paths]

def findVMFiles(source:str)->List[str]:
    '''a single .vm file, or every .vm file directly inside a directory (sorted)'''
    if not os.path.exists(source):
        raise UsageError(f'source {source} does not exist')
    if os.path.isdir(source):
        files = sorted(
            os.path.join(source, f) for f in os.listdir(source)
            if f.endswith(VM_EXTENSION) and os.path.isfile(os.path.join(source, f))
        )
        if not files:
            raise UsageError(f'no {VM_EXTENSION} files found in {source}')
        return files
    if not source.endswith(VM_EXTENSION):
        raise UsageError(f'source {source} is not a {VM_EXTENSION} file')
    return [source]

def findEntryPoint(modules: List[Module])->Optional[int]:
    'index of the first module declaring the entry point, None if absent'
    for i, module in enumerate(modules):
        for l in module.lines:
            if ENTRY_DECLARATION in ' '.join(l.split()):
                return i
    return None

def checkModuleNames(modules: List[Module]):
    '''module names prefix statics, two modules may not share one'''
    seen = {}
    for module in modules:
        if module.name in seen:
            first = seen[module.name]
            raise DuplicateModule(f'{module.path or module.name} and {first.path or first.name} '
                                  f'both map to module name {module.name}', module.name)
        seen[module.name] = module

def sequenceModules(modules: List[Module])->Tuple[List[Module], bool]:
    '''
    order modules so the one declaring Sys.init is scanned last
    return (ordered modules, whether a bootstrap is needed)
    '''
    checkModuleNames(modules)
    entry = findEntryPoint(modules)
    if entry is None:
        if len(modules) > 1:
            raise MissingEntryPoint(f'{ENTRY_DECLARATION} not found in any of {len(modules)} source modules')
        # a single module may be a test fragment without an entry point
        return list(modules), False
    ordered = [m for i, m in enumerate(modules) if i != entry] + [modules[entry]]
    return ordered, True
