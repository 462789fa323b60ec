"""
GBNF grammars for constraining llama.cpp output to the JSON shapes we parse.
"""

_STRING = r'string ::= "\"" ([^"\\] | "\\" (["\\/bfnrt] | "u" [0-9a-fA-F] [0-9a-fA-F] [0-9a-fA-F] [0-9a-fA-F]))* "\""'
_STRING_LIST = r'string_list ::= "[" ws (string (ws "," ws string)*)? ws "]"'
_WS = r"ws ::= [ \t\n]*"


def _grammar(*rules: str) -> str:
    return "\n".join(rules + (_STRING, _STRING_LIST, _WS))


# { "category": "...", "tags": ["...", ...] }
CLASSIFICATION = _grammar(
    "root ::= object",
    r'object ::= "{" ws "\"category\"" ws ":" ws string ws "," ws "\"tags\"" ws ":" ws string_list ws "}"',
)

# [ { "title": "...", "description": "...", "differences": [...] }, ... ]
MUTATIONS = _grammar(
    "root ::= mutation_list",
    r'mutation_list ::= "[" ws (mutation (ws "," ws mutation)*)? ws "]"',
    r'mutation ::= "{" ws "\"title\"" ws ":" ws string ws "," ws "\"description\"" ws ":" ws string ws ","'
    r' ws "\"differences\"" ws ":" ws string_list ws "}"',
)
