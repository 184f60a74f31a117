"""Reversa parser. Recursive descent, one method per grammar production.

The parser only rejects malformed syntax. Constructs that are well-formed but
not invertible (`x *= 2`, bare expressions, array literals) are kept in the
tree; the transformers reject them with precise diagnostics.
"""

from __future__ import annotations

from .ast import (
    FORWARD,
    Pos,
    RArrayLit,
    RBinaryOp,
    RBlock,
    RBlockStmt,
    RBoolLit,
    RCompoundAssign,
    RConditional,
    RExpr,
    RExprStmt,
    RFuncCall,
    RIndex,
    RIntLit,
    RLocalDecl,
    RLoop,
    RParam,
    RProgram,
    RRetire,
    RRoutine,
    RRoutineCall,
    RStmt,
    RSwap,
    RUnaryOp,
    RVar,
)
from .tokens import (
    COMPARE_OPS as _COMPARE,
    COMPOUND_OPS,
    TK_EOF,
    TK_IDENT,
    TK_INT,
    TK_OP,
    Token,
)

ASSIGN_OPS: set[str] = {"="} | set(COMPOUND_OPS)

COMPARE_OPS: set[str] = set(_COMPARE)


class ParseError(Exception):
    """Parse error with location info."""

    def __init__(self, msg: str, line: int, col: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        super().__init__(msg + " at line " + str(line) + " col " + str(col))


class Parser:
    """Recursive descent parser for Reversa."""

    def __init__(self, tokens: list[Token]):
        self.tokens: list[Token] = tokens
        self.pos: int = 0

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def at(self, value: str) -> bool:
        return self.current().value == value

    def at_type(self, type_: str) -> bool:
        return self.current().type == type_

    def expect(self, value: str) -> Token:
        tok = self.current()
        if tok.value != value:
            raise self.error("expected '" + value + "', got '" + tok.value + "'")
        return self.advance()

    def expect_ident(self) -> Token:
        tok = self.current()
        if tok.type != TK_IDENT:
            raise self.error("expected identifier, got '" + tok.value + "'")
        return self.advance()

    def error(self, msg: str) -> ParseError:
        tok = self.current()
        return ParseError(msg, tok.line, tok.col)

    def _pos(self) -> Pos:
        tok = self.current()
        return Pos(tok.line, tok.col)

    # ── Top Level ────────────────────────────────────────────

    def parse_program(self) -> RProgram:
        routines: list[RRoutine] = []
        while not self.at_type(TK_EOF):
            routines.append(self.parse_routine())
        return RProgram(routines)

    def parse_routine(self) -> RRoutine:
        pos = self._pos()
        self.expect("fn")
        name_tok = self.expect_ident()
        self.expect("(")
        params: list[RParam] = []
        if not self.at(")"):
            params.append(self.parse_param())
            while self.at(","):
                self.advance()
                params.append(self.parse_param())
        self.expect(")")
        body = self.parse_block()
        return RRoutine(pos, name_tok.value, params, body)

    def parse_param(self) -> RParam:
        pos = self._pos()
        name_tok = self.expect_ident()
        self.expect(":")
        return RParam(pos, name_tok.value, self.parse_type())

    def parse_type(self) -> str:
        if self.at("int") or self.at("bool"):
            return self.advance().value
        if self.at("["):
            self.advance()
            self.expect("int")
            self.expect("]")
            return "[int]"
        raise self.error("expected type, got '" + self.current().value + "'")

    def parse_block(self) -> RBlock:
        pos = self._pos()
        self.expect("{")
        stmts: list[RStmt] = []
        while not self.at("}"):
            if self.at_type(TK_EOF):
                raise self.error("unterminated block")
            stmts.append(self.parse_stmt())
        self.expect("}")
        return RBlock(pos, stmts)

    # ── Statements ───────────────────────────────────────────

    def parse_stmt(self) -> RStmt:
        tok = self.current()
        if tok.value == "local":
            return self.parse_local_stmt()
        if tok.value == "delocal":
            return self.parse_delocal_stmt()
        if tok.value == "call":
            return self.parse_call_stmt()
        if tok.value == "swap":
            return self.parse_swap_stmt()
        if tok.value == "if":
            return self.parse_if_stmt()
        if tok.value == "from":
            return self.parse_from_stmt()
        if tok.value == "{" and tok.type == TK_OP:
            pos = self._pos()
            return RBlockStmt(pos, self.parse_block())
        return self.parse_expr_stmt()

    def parse_local_stmt(self) -> RLocalDecl:
        pos = self._pos()
        self.expect("local")
        name_tok = self.expect_ident()
        self.expect("=")
        return RLocalDecl(pos, name_tok.value, self.parse_expr())

    def parse_delocal_stmt(self) -> RExprStmt:
        pos = self._pos()
        self.expect("delocal")
        name_tok = self.expect_ident()
        self.expect("=")
        expected = self.parse_expr()
        return RExprStmt(pos, RRetire(pos, name_tok.value, expected))

    def parse_call_stmt(self) -> RExprStmt:
        pos = self._pos()
        self.expect("call")
        name_tok = self.expect_ident()
        self.expect("(")
        args = self.parse_expr_list(")")
        self.expect(")")
        return RExprStmt(pos, RRoutineCall(pos, name_tok.value, FORWARD, args))

    def parse_swap_stmt(self) -> RExprStmt:
        pos = self._pos()
        self.expect("swap")
        self.expect("(")
        left = self.parse_expr()
        self.expect(",")
        right = self.parse_expr()
        self.expect(")")
        return RExprStmt(pos, RSwap(pos, left, right))

    def parse_if_stmt(self) -> RExprStmt:
        """If = 'if' Expr Block ( 'else' Block )? 'fi' Expr"""
        pos = self._pos()
        self.expect("if")
        before = self.parse_expr()
        then_body = self.parse_block()
        else_body: RBlock | None = None
        if self.at("else"):
            self.advance()
            else_body = self.parse_block()
        self.expect("fi")
        after = self.parse_expr()
        return RExprStmt(pos, RConditional(pos, before, then_body, else_body, after))

    def parse_from_stmt(self) -> RExprStmt:
        """From = 'from' Expr ( 'do' Block 'loop' )? Block 'until' Expr"""
        pos = self._pos()
        self.expect("from")
        from_cond = self.parse_expr()
        do_body: RBlock | None = None
        if self.at("do"):
            self.advance()
            do_body = self.parse_block()
            self.expect("loop")
        body = self.parse_block()
        self.expect("until")
        until = self.parse_expr()
        return RExprStmt(pos, RLoop(pos, from_cond, do_body, body, until))

    def parse_expr_stmt(self) -> RExprStmt:
        """ExprStmt = Expr ( AssignOp Expr )?"""
        pos = self._pos()
        expr = self.parse_expr()
        tok = self.current()
        if tok.type == TK_OP and tok.value in ASSIGN_OPS:
            op = tok.value
            self.advance()
            value = self.parse_expr()
            return RExprStmt(pos, RCompoundAssign(pos, expr, op, value))
        return RExprStmt(pos, expr)

    def parse_expr_list(self, closer: str) -> list[RExpr]:
        items: list[RExpr] = []
        if self.at(closer):
            return items
        items.append(self.parse_expr())
        while self.at(","):
            self.advance()
            items.append(self.parse_expr())
        return items

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self) -> RExpr:
        return self.parse_or()

    def parse_or(self) -> RExpr:
        """Or = And ( '||' And )*"""
        left = self.parse_and()
        while self.at("||"):
            self.advance()
            right = self.parse_and()
            left = RBinaryOp(left.pos, "||", left, right)
        return left

    def parse_and(self) -> RExpr:
        """And = Compare ( '&&' Compare )*"""
        left = self.parse_compare()
        while self.at("&&"):
            self.advance()
            right = self.parse_compare()
            left = RBinaryOp(left.pos, "&&", left, right)
        return left

    def parse_compare(self) -> RExpr:
        """Compare = BitOr ( CompOp BitOr )?"""
        left = self.parse_bit_or()
        tok = self.current()
        if tok.type == TK_OP and tok.value in COMPARE_OPS:
            op = tok.value
            self.advance()
            right = self.parse_bit_or()
            return RBinaryOp(left.pos, op, left, right)
        return left

    def parse_bit_or(self) -> RExpr:
        """BitOr = BitXor ( '|' BitXor )*"""
        left = self.parse_bit_xor()
        while self.at("|"):
            self.advance()
            right = self.parse_bit_xor()
            left = RBinaryOp(left.pos, "|", left, right)
        return left

    def parse_bit_xor(self) -> RExpr:
        """BitXor = BitAnd ( '^' BitAnd )*"""
        left = self.parse_bit_and()
        while self.at("^"):
            self.advance()
            right = self.parse_bit_and()
            left = RBinaryOp(left.pos, "^", left, right)
        return left

    def parse_bit_and(self) -> RExpr:
        """BitAnd = Shift ( '&' Shift )*"""
        left = self.parse_shift()
        while self.at("&"):
            self.advance()
            right = self.parse_shift()
            left = RBinaryOp(left.pos, "&", left, right)
        return left

    def parse_shift(self) -> RExpr:
        """Shift = Sum ( ( '<<' | '>>' ) Sum )*"""
        left = self.parse_sum()
        while self.at("<<") or self.at(">>"):
            op = self.advance().value
            right = self.parse_sum()
            left = RBinaryOp(left.pos, op, left, right)
        return left

    def parse_sum(self) -> RExpr:
        """Sum = Product ( ( '+' | '-' ) Product )*"""
        left = self.parse_product()
        while self.at("+") or self.at("-"):
            op = self.advance().value
            right = self.parse_product()
            left = RBinaryOp(left.pos, op, left, right)
        return left

    def parse_product(self) -> RExpr:
        """Product = Unary ( ( '*' | '/' | '%' ) Unary )*"""
        left = self.parse_unary()
        while self.at("*") or self.at("/") or self.at("%"):
            op = self.advance().value
            right = self.parse_unary()
            left = RBinaryOp(left.pos, op, left, right)
        return left

    def parse_unary(self) -> RExpr:
        """Unary = ( '-' | '!' | '~' ) Unary | Postfix"""
        tok = self.current()
        if tok.type == TK_OP and (
            tok.value == "-" or tok.value == "!" or tok.value == "~"
        ):
            pos = self._pos()
            op = self.advance().value
            operand = self.parse_unary()
            return RUnaryOp(pos, op, operand)
        return self.parse_postfix()

    def parse_postfix(self) -> RExpr:
        """Postfix = Primary ( '[' Expr ']' )*"""
        expr = self.parse_primary()
        while self.at("["):
            self.advance()
            index = self.parse_expr()
            self.expect("]")
            expr = RIndex(expr.pos, expr, index)
        return expr

    def parse_primary(self) -> RExpr:
        """Parse a primary expression."""
        tok = self.current()
        pos = self._pos()

        if tok.type == TK_INT:
            self.advance()
            return RIntLit(pos, int(tok.value))
        if tok.value == "true":
            self.advance()
            return RBoolLit(pos, True)
        if tok.value == "false":
            self.advance()
            return RBoolLit(pos, False)

        if tok.type == TK_IDENT:
            self.advance()
            if self.at("("):
                self.advance()
                args = self.parse_expr_list(")")
                self.expect(")")
                return RFuncCall(pos, tok.value, args)
            return RVar(pos, tok.value)

        if tok.value == "(":
            self.advance()
            inner = self.parse_expr()
            self.expect(")")
            return inner

        if tok.value == "[":
            self.advance()
            elements = self.parse_expr_list("]")
            self.expect("]")
            return RArrayLit(pos, elements)

        raise self.error("expected expression, got '" + tok.value + "'")
