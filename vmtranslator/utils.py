import json
from typing import List, Dict

WORD_SIZE = 16 # 16 width for hack machine

def wrap(d:int, word_size:int=WORD_SIZE)->int:
    '''fold an arbitrary int into the signed range of a word, e.g. 32768 -> -32768'''
    half = 1 << (word_size - 1)
    return ((d + half) % (1 << word_size)) - half

def dec2bin(dec:int, n_digits:int)->str:
    # decimal to binary in 2's complement notation
    return format(dec & ((1 << n_digits) - 1), f'0{n_digits}b')

def bin2dec(b:str)->int:
    ''' convert binary number str to dec int
    this function uses 2's complement to interpret the int
    that is if b start with 1 it is treated as negative'''
    assert b and sum(c not in '01' for c in b) == 0, f'{b} is not binary'
    return wrap(int(b, 2), len(b))

def isInt(s:str)->bool:
    try:
        int(s)
        return True
    except ValueError:
        return False

def isNat(s:str)->bool:
    # plain decimal digits only: no sign, no whitespace
    return s.isascii() and s.isdigit()

def lineStrip(code:str)->List[str]:
    '''split a multi-line assembly template into stripped non-empty lines'''
    return list(filter(lambda x: x != "",
                       map(lambda x: x.strip(), code.split('\n'))))

def pretty_format_dict(d: Dict)->str:
    return json.dumps(d, indent=4, default=str)

def binary_add(a:int, b:int, word_size:int=WORD_SIZE)->int:
    return wrap(a + b, word_size)

def binary_neg(d:int, word_size:int=WORD_SIZE)->int:
    return wrap(-d, word_size)

def binary_flip(d:int, word_size:int=WORD_SIZE)->int:
    return wrap(~d, word_size)

def binary_and(a:int, b:int, word_size:int=WORD_SIZE)->int:
    return wrap(a & b, word_size)

def binary_or(a:int, b:int, word_size:int=WORD_SIZE)->int:
    return wrap(a | b, word_size)
