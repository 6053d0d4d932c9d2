"""Lark grammar definition for Cosmic Forge formulas.

Formulas are JavaScript-flavoured expressions so that the ones template
authors already wrote keep working:
- Arithmetic: +, -, *, /, %
- Comparison: ==, !=, ===, !==, <, >, <=, >=
- Logical: &&, ||, !
- Ternary: condition ? a : b
- Bare identifiers naming fields: attack * 1.5 + defense
- Member, index and call syntax: Math.round(x), list[0], name.length
- Literals: numbers, strings, true, false, null, [arrays], {objects}
- Comments: // line and /* block */

Assignments parse so they can be reported as sandbox violations rather
than as syntax errors.
"""

# Lark grammar for formula parsing
FORMULA_GRAMMAR = r"""
    ?start: expression

    ?expression: conditional
        | postfix ASSIGN_OP expression -> assignment

    ?conditional: or_expr
        | or_expr "?" expression ":" expression -> ternary

    ?or_expr: and_expr
        | or_expr "||" and_expr -> or_op

    ?and_expr: equality
        | and_expr "&&" equality -> and_op

    ?equality: comparison
        | equality "==" comparison -> eq
        | equality "===" comparison -> eq
        | equality "!=" comparison -> ne
        | equality "!==" comparison -> ne

    ?comparison: additive
        | comparison "<" additive -> lt
        | comparison ">" additive -> gt
        | comparison "<=" additive -> le
        | comparison ">=" additive -> ge

    ?additive: multiplicative
        | additive "+" multiplicative -> add
        | additive "-" multiplicative -> sub

    ?multiplicative: unary
        | multiplicative "*" unary -> mul
        | multiplicative "/" unary -> div
        | multiplicative "%" unary -> mod

    ?unary: postfix
        | "-" unary -> neg
        | "+" unary -> pos
        | "!" unary -> not_op

    ?postfix: atom
        | postfix "." NAME -> member
        | postfix "[" expression "]" -> index
        | postfix "(" [arguments] ")" -> call

    ?atom: NUMBER -> number
        | STRING -> string
        | "true" -> true
        | "false" -> false
        | "null" -> null
        | "undefined" -> null
        | NAME -> identifier
        | "[" [arguments] "]" -> array
        | "{" [entries] "}" -> obj
        | "(" expression ")"

    arguments: expression ("," expression)*

    entries: entry ("," entry)*

    entry: (NAME | STRING) ":" expression

    // "=" must not swallow the first character of "==" / "==="
    ASSIGN_OP: /[-+*\/%]?=(?!=)/

    NAME: /[A-Za-z_$][A-Za-z0-9_$]*/

    // String literals (single or double quotes, backslash escapes)
    STRING: /"(?:[^"\\\n]|\\.)*"/ | /'(?:[^'\\\n]|\\.)*'/

    // Number literals (integer or decimal, with optional scientific notation)
    // Note: negative sign is handled by unary operator, not here
    NUMBER: /(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?/

    COMMENT: /\/\/[^\n]*/ | /\/\*[\s\S]*?\*\//

    %import common.WS
    %ignore WS
    %ignore COMMENT
"""
