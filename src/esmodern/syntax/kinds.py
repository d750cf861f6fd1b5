from __future__ import annotations

from enum import Enum


class NodeKind(str, Enum):
    PROGRAM = "program"
    # statements
    EXPRESSION_STATEMENT = "expression_statement"
    VARIABLE_DECLARATION = "variable_declaration"
    LEXICAL_DECLARATION = "lexical_declaration"
    VARIABLE_DECLARATOR = "variable_declarator"
    STATEMENT_BLOCK = "statement_block"
    IF_STATEMENT = "if_statement"
    ELSE_CLAUSE = "else_clause"
    FOR_STATEMENT = "for_statement"
    FOR_IN_STATEMENT = "for_in_statement"
    WHILE_STATEMENT = "while_statement"
    DO_STATEMENT = "do_statement"
    TRY_STATEMENT = "try_statement"
    CATCH_CLAUSE = "catch_clause"
    FINALLY_CLAUSE = "finally_clause"
    RETURN_STATEMENT = "return_statement"
    THROW_STATEMENT = "throw_statement"
    SWITCH_STATEMENT = "switch_statement"
    SWITCH_BODY = "switch_body"
    SWITCH_CASE = "switch_case"
    SWITCH_DEFAULT = "switch_default"
    LABELED_STATEMENT = "labeled_statement"
    WITH_STATEMENT = "with_statement"
    EMPTY_STATEMENT = "empty_statement"
    IMPORT_STATEMENT = "import_statement"
    IMPORT_CLAUSE = "import_clause"
    IMPORT_SPECIFIER = "import_specifier"
    NAMESPACE_IMPORT = "namespace_import"
    EXPORT_STATEMENT = "export_statement"
    EXPORT_SPECIFIER = "export_specifier"
    # functions and classes
    FUNCTION_DECLARATION = "function_declaration"
    FUNCTION_EXPRESSION = "function_expression"
    GENERATOR_FUNCTION = "generator_function"
    GENERATOR_FUNCTION_DECLARATION = "generator_function_declaration"
    ARROW_FUNCTION = "arrow_function"
    METHOD_DEFINITION = "method_definition"
    FORMAL_PARAMETERS = "formal_parameters"
    CLASS = "class"
    CLASS_DECLARATION = "class_declaration"
    CLASS_BODY = "class_body"
    # expressions
    CALL_EXPRESSION = "call_expression"
    NEW_EXPRESSION = "new_expression"
    ARGUMENTS = "arguments"
    MEMBER_EXPRESSION = "member_expression"
    SUBSCRIPT_EXPRESSION = "subscript_expression"
    OPTIONAL_CHAIN = "optional_chain"
    ASSIGNMENT_EXPRESSION = "assignment_expression"
    AUGMENTED_ASSIGNMENT_EXPRESSION = "augmented_assignment_expression"
    BINARY_EXPRESSION = "binary_expression"
    UNARY_EXPRESSION = "unary_expression"
    UPDATE_EXPRESSION = "update_expression"
    TERNARY_EXPRESSION = "ternary_expression"
    SEQUENCE_EXPRESSION = "sequence_expression"
    PARENTHESIZED_EXPRESSION = "parenthesized_expression"
    AWAIT_EXPRESSION = "await_expression"
    YIELD_EXPRESSION = "yield_expression"
    SPREAD_ELEMENT = "spread_element"
    ARRAY = "array"
    OBJECT = "object"
    PAIR = "pair"
    TEMPLATE_STRING = "template_string"
    TEMPLATE_SUBSTITUTION = "template_substitution"
    META_PROPERTY = "meta_property"
    # patterns
    ARRAY_PATTERN = "array_pattern"
    OBJECT_PATTERN = "object_pattern"
    PAIR_PATTERN = "pair_pattern"
    ASSIGNMENT_PATTERN = "assignment_pattern"
    OBJECT_ASSIGNMENT_PATTERN = "object_assignment_pattern"
    REST_PATTERN = "rest_pattern"
    # leaves
    IDENTIFIER = "identifier"
    PROPERTY_IDENTIFIER = "property_identifier"
    SHORTHAND_PROPERTY_IDENTIFIER = "shorthand_property_identifier"
    SHORTHAND_PROPERTY_IDENTIFIER_PATTERN = "shorthand_property_identifier_pattern"
    PRIVATE_PROPERTY_IDENTIFIER = "private_property_identifier"
    STATEMENT_IDENTIFIER = "statement_identifier"
    STRING = "string"
    NUMBER = "number"
    REGEX = "regex"
    THIS = "this"
    SUPER = "super"
    NULL = "null"
    TRUE = "true"
    FALSE = "false"
    UNDEFINED = "undefined"
    # anything the rules never look inside
    OTHER = "other"


# Older grammar releases name function expressions "function".
_ALIASES = {"function": NodeKind.FUNCTION_EXPRESSION}
_BY_TYPE = {kind.value: kind for kind in NodeKind if kind is not NodeKind.OTHER}


def kind_for_type(node_type: str) -> NodeKind:
    kind = _BY_TYPE.get(node_type)
    if kind is None:
        kind = _ALIASES.get(node_type, NodeKind.OTHER)
    return kind


LEAF_KINDS = frozenset(
    {
        NodeKind.IDENTIFIER,
        NodeKind.PROPERTY_IDENTIFIER,
        NodeKind.SHORTHAND_PROPERTY_IDENTIFIER,
        NodeKind.SHORTHAND_PROPERTY_IDENTIFIER_PATTERN,
        NodeKind.PRIVATE_PROPERTY_IDENTIFIER,
        NodeKind.STATEMENT_IDENTIFIER,
        NodeKind.STRING,
        NodeKind.NUMBER,
        NodeKind.REGEX,
        NodeKind.THIS,
        NodeKind.SUPER,
        NodeKind.NULL,
        NodeKind.TRUE,
        NodeKind.FALSE,
        NodeKind.UNDEFINED,
    }
)

# tree-sitter node types that are kept opaque even though they have children.
OPAQUE_TYPES = frozenset({"string", "regex", "hash_bang_line", "html_comment", "jsx_text"})

FUNCTION_KINDS = frozenset(
    {
        NodeKind.FUNCTION_DECLARATION,
        NodeKind.FUNCTION_EXPRESSION,
        NodeKind.GENERATOR_FUNCTION,
        NodeKind.GENERATOR_FUNCTION_DECLARATION,
        NodeKind.ARROW_FUNCTION,
        NodeKind.METHOD_DEFINITION,
    }
)

# Functions that bind their own `this` and `arguments`.
NON_ARROW_FUNCTION_KINDS = FUNCTION_KINDS - {NodeKind.ARROW_FUNCTION}

LOOP_KINDS = frozenset(
    {
        NodeKind.FOR_STATEMENT,
        NodeKind.FOR_IN_STATEMENT,
        NodeKind.WHILE_STATEMENT,
        NodeKind.DO_STATEMENT,
    }
)

PATTERN_KINDS = frozenset(
    {
        NodeKind.ARRAY_PATTERN,
        NodeKind.OBJECT_PATTERN,
        NodeKind.PAIR_PATTERN,
        NodeKind.ASSIGNMENT_PATTERN,
        NodeKind.OBJECT_ASSIGNMENT_PATTERN,
        NodeKind.REST_PATTERN,
    }
)

DECLARATION_KINDS = frozenset(
    {NodeKind.VARIABLE_DECLARATION, NodeKind.LEXICAL_DECLARATION}
)

# Slots that always hold an ordered list of children.
LIST_SLOTS: dict[NodeKind, str] = {
    NodeKind.PROGRAM: "body",
    NodeKind.STATEMENT_BLOCK: "body",
    NodeKind.CLASS_BODY: "members",
    NodeKind.SWITCH_BODY: "cases",
    NodeKind.ARGUMENTS: "items",
    NodeKind.FORMAL_PARAMETERS: "items",
    NodeKind.ARRAY: "items",
    NodeKind.OBJECT: "items",
    NodeKind.ARRAY_PATTERN: "items",
    NodeKind.OBJECT_PATTERN: "items",
    NodeKind.VARIABLE_DECLARATION: "declarators",
    NodeKind.LEXICAL_DECLARATION: "declarators",
    NodeKind.SEQUENCE_EXPRESSION: "items",
    NodeKind.TEMPLATE_STRING: "items",
}

# Canonical slot for the single unnamed child of these kinds.
SINGLE_SLOTS: dict[NodeKind, str] = {
    NodeKind.EXPRESSION_STATEMENT: "expression",
    NodeKind.RETURN_STATEMENT: "argument",
    NodeKind.THROW_STATEMENT: "argument",
    NodeKind.AWAIT_EXPRESSION: "argument",
    NodeKind.YIELD_EXPRESSION: "argument",
    NodeKind.SPREAD_ELEMENT: "argument",
    NodeKind.REST_PATTERN: "argument",
    NodeKind.PARENTHESIZED_EXPRESSION: "expression",
    NodeKind.TEMPLATE_SUBSTITUTION: "expression",
    NodeKind.ELSE_CLAUSE: "body",
    NodeKind.NAMESPACE_IMPORT: "name",
}

STATEMENT_LIST_KINDS = frozenset(
    {NodeKind.PROGRAM, NodeKind.STATEMENT_BLOCK, NodeKind.SWITCH_CASE, NodeKind.SWITCH_DEFAULT}
)

# Field-named slots that are lists even when they hold one child.
FIELD_LIST_SLOTS = frozenset(
    {
        (NodeKind.SWITCH_CASE, "body"),
        (NodeKind.SWITCH_DEFAULT, "body"),
        (NodeKind.CLASS, "decorator"),
        (NodeKind.CLASS_DECLARATION, "decorator"),
        (NodeKind.METHOD_DEFINITION, "decorator"),
    }
)


def statement_slot(kind: NodeKind | None) -> str | None:
    """Name of the slot holding a statement list for ``kind``."""
    if kind in STATEMENT_LIST_KINDS:
        return "body"
    return None
