"""Source inspection for JavaScript/TypeScript using tree-sitter.

Works on in-memory content: generated files never touch disk before they
are validated.
"""

from pathlib import PurePosixPath

import tree_sitter_javascript as tsjs
import tree_sitter_typescript as tsts
from tree_sitter import Language, Parser, Query, QueryCursor, Tree

JS_LANGUAGE = Language(tsjs.language())
TS_LANGUAGE = Language(tsts.language_typescript())
TSX_LANGUAGE = Language(tsts.language_tsx())

_LANGUAGES = {
    "javascript": JS_LANGUAGE,
    "typescript": TS_LANGUAGE,
    "tsx": TSX_LANGUAGE,
}

SCRIPT_EXTENSIONS = frozenset({".js", ".jsx", ".ts", ".tsx"})


def get_language_for_file(file_path: str) -> str:
    """Map file extension to tree-sitter language name.

    Args:
        file_path: Project-relative path of the file.

    Returns:
        Language name ("javascript", "typescript", "tsx").

    Raises:
        ValueError: If file extension is not supported.
    """
    ext = PurePosixPath(file_path).suffix
    mapping = {
        ".js": "javascript",
        ".jsx": "javascript",
        ".ts": "typescript",
        ".tsx": "tsx",
    }
    if ext not in mapping:
        raise ValueError(f"Unsupported file extension: {ext}")
    return mapping[ext]


def get_parser(language: str) -> Parser:
    """Return a tree-sitter Parser for the given language name."""
    if language not in _LANGUAGES:
        raise ValueError(f"Unsupported language: {language}")
    parser = Parser()
    parser.language = _LANGUAGES[language]
    return parser


def parse_source(content: str, file_path: str) -> tuple[Tree, Language]:
    """Parse in-memory source, picking the grammar from ``file_path``.

    Raises:
        ValueError: If the file extension is not a script extension.
    """
    language_name = get_language_for_file(file_path)
    tree = get_parser(language_name).parse(content.encode("utf-8"))
    return tree, _LANGUAGES[language_name]


def extract_imports(tree: Tree, language: Language) -> list[str]:
    """Extract module specifiers from import statements, in source order."""
    imports = []
    query = Query(language, """
        (import_statement
            source: (string) @source)
    """)
    for _, captures in QueryCursor(query).matches(tree.root_node):
        for node in captures.get("source", []):
            if node.text:
                imports.append(node.text.decode("utf-8").strip("'\""))
    return imports


def has_export_statement(tree: Tree, language: Language) -> bool:
    """Return True if the module has any top-level export statement."""
    query = Query(language, "(export_statement) @export")
    for _, captures in QueryCursor(query).matches(tree.root_node):
        if captures.get("export"):
            return True
    return False
