# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Per-module checking: declarations, statements and mutability.

Module-level functions and variables are typed lazily (on first reference or
in declaration order, whichever comes first) so unannotated functions can be
used before their declaration and across modules. A recursion guard on each
symbol turns inference cycles into diagnostics instead of infinite loops.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional, Sequence, Set, Tuple

from ..core.diagnostics import DiagnosticKind
from ..core.types_core import (
	BOOL,
	DYNAMIC,
	FLOAT,
	INT,
	NULL,
	STR,
	UNKNOWN,
	VOID,
	Collection,
	Function,
	Named,
	NamedInfo,
	Record,
	Result,
	TupleType,
	Type,
	Unknown,
	error_widens_to,
	is_assignable,
	is_numeric,
	lub,
	nullable,
	strip_null,
)
from ..parser import ast as A
from .decorations import CheckedModule, ResultMode, ReturnWrap
from .expr_checker import ExpressionChecker, FnContext, null_test
from .symbols import ModuleInfo, Scope, Symbol, SymbolKind
from .type_resolver import TypeResolver, is_valid_error_type

if TYPE_CHECKING:
	from . import Checker

logger = logging.getLogger(__name__)


class ModuleChecker(ExpressionChecker):
	def __init__(self, program: "Checker", info: ModuleInfo, builtins: Scope) -> None:
		self.program = program
		self.info = info
		self.checked = CheckedModule(info.module_id, info.path, info.context, info.ast, info)
		self.scope = Scope(builtins, "module")
		for sym in info.symbols.values():
			self.scope.define(sym)
		self.resolver = TypeResolver(self._lookup_type, self.checked.diagnostics)
		self.module_ctx = FnContext("<module>", None, is_module=True)
		self._destructure_call_id: Optional[int] = None
		# Top-level declarations whose bodies/initialisers have been checked.
		self._done: Set[int] = set()
		self._recursion_reported: Set[int] = set()

	@property
	def module_id(self) -> str:
		return self.info.module_id

	def _lookup_type(self, name: str) -> Optional[Type]:
		sym = self.scope.lookup(name)
		if sym is None or not sym.is_type_like:
			return None
		return self.program.symbol_type(sym)

	# Declarations ------------------------------------------------------------

	def declare_types(self) -> None:
		"""Create Named handles so record and enum declarations may refer to each other."""
		for sym in self.info.symbols.values():
			if sym.kind is SymbolKind.ENUM:
				named = Named(sym.name, f"{self.module_id}:{sym.name}", NamedInfo(kind="enum", module=self.module_id))
				sym.type = named
				self.checked.named_types[sym.name] = named
			elif sym.kind is SymbolKind.TYPE and isinstance(sym.decl.type_expr, A.RecordTypeExpr):  # type: ignore[union-attr]
				named = Named(sym.name, f"{self.module_id}:{sym.name}", NamedInfo(kind="record", module=self.module_id))
				sym.type = named
				self.checked.named_types[sym.name] = named

	def resolve_symbol(self, sym: Symbol) -> Type:
		if sym.kind is SymbolKind.TYPE:
			return self._resolve_type_decl(sym)
		if sym.kind is SymbolKind.ENUM:
			return self._resolve_enum(sym)
		if sym.kind is SymbolKind.FUNCTION:
			return self._resolve_function(sym)
		if sym.kind is SymbolKind.VARIABLE:
			return self._resolve_variable(sym)
		return sym.type

	def _resolve_type_decl(self, sym: Symbol) -> Type:
		decl: A.TypeDecl = sym.decl  # type: ignore[assignment]
		if isinstance(sym.type, Named):
			named = sym.type
			if sym.resolving:
				return named
			sym.resolving = True
			body = self.resolver.resolve(decl.type_expr)
			named.info.body = body if isinstance(body, Record) else None
			sym.resolving = False
			sym.resolved = True
			return named
		if sym.resolving:
			sym.type = UNKNOWN
			sym.resolved = True
			self.error(f"type alias '{sym.name}' refers to itself; declare a record type for recursive data", decl)
			return UNKNOWN
		sym.resolving = True
		t = self.resolver.resolve(decl.type_expr)
		sym.resolving = False
		if not sym.resolved:
			sym.type = t
			sym.resolved = True
		return sym.type

	def _resolve_enum(self, sym: Symbol) -> Type:
		decl: A.EnumDecl = sym.decl  # type: ignore[assignment]
		named: Named = sym.type  # type: ignore[assignment]
		sym.resolved = True
		variants: List[Tuple[str, object]] = []
		kinds = set()
		names: Set[str] = set()
		values: Set[object] = set()
		for v in decl.variants:
			if v.name in names:
				self.error(f"duplicate variant '{v.name}' in enum '{decl.name}'", v, code="E-ENUM")
				continue
			names.add(v.name)
			if v.backing is None:
				kind, value = "str", v.name
			else:
				kind, value = v.backing.kind, v.backing.value
			if kind not in ("str", "int"):
				self.error(f"enum backing values must be str or int, found {kind} for '{v.name}'", v, code="E-ENUM")
				continue
			if (kind, value) in values:
				self.error(f"duplicate backing value {value!r} in enum '{decl.name}'", v, code="E-ENUM")
				continue
			values.add((kind, value))
			kinds.add(kind)
			variants.append((v.name, value))
		if len(kinds) > 1:
			self.error(f"enum '{decl.name}' mixes str and int backing values", decl, code="E-ENUM")
		named.info.variants = variants
		named.info.backing = INT if kinds == {"int"} else STR
		return named

	def _param_types(self, params: Sequence[A.Param], fn_name: str) -> Tuple[Type, ...]:
		out = []
		for p in params:
			if p.type_expr is None:
				out.append(self.error(f"parameter '{p.name}' of '{fn_name}' needs a type annotation", p))
			else:
				out.append(self.resolver.resolve(p.type_expr))
		return tuple(out)

	def _resolve_function(self, sym: Symbol) -> Type:
		decl: A.FunctionDecl = sym.decl  # type: ignore[assignment]
		if sym.resolving:
			if decl.node_id not in self._recursion_reported:
				self._recursion_reported.add(decl.node_id)
				self.error(f"recursive function '{decl.name}' needs a return type annotation", decl)
			return sym.type
		params = self._param_types(decl.params, decl.name)
		if decl.ret_type is not None:
			sym.type = Function(params, self.resolver.resolve(decl.ret_type))
			sym.resolved = True
			return sym.type
		sym.type = Function(params, UNKNOWN)
		sym.resolving = True
		ret = self.check_function(decl, params, None, self.scope)
		self._done.add(decl.node_id)
		sym.type = Function(params, ret)
		sym.resolving = False
		sym.resolved = True
		return sym.type

	def _resolve_variable(self, sym: Symbol) -> Type:
		decl: A.VariableDecl = sym.decl  # type: ignore[assignment]
		if sym.resolving:
			sym.type = UNKNOWN
			return self.error(f"'{sym.name}' is used in its own initializer", decl)
		sym.resolving = True
		t = self._record(decl, self._binding_type(decl, self.scope, self.module_ctx))
		sym.resolving = False
		if not sym.resolved:
			sym.type = t
			sym.resolved = True
		self._done.add(decl.node_id)
		return sym.type

	# Module body -----------------------------------------------------------

	def check_module(self) -> CheckedModule:
		logger.debug("checking %s", self.module_id)
		for sym in list(self.info.symbols.values()):
			if sym.kind in (SymbolKind.TYPE, SymbolKind.ENUM):
				self.program.symbol_type(sym)
		for item in self.info.ast.items:
			self._check_item(A.unwrap_item(item))
		return self.checked

	def _check_item(self, item: A.Node) -> None:
		if isinstance(item, (A.ImportDecl, A.EnumDecl)):
			return
		if isinstance(item, A.TypeDecl):
			return
		if isinstance(item, A.FunctionDecl):
			sym = self.info.symbols.get(item.name)
			if sym is None or sym.decl is not item:
				return
			fn_t = self.program.symbol_type(sym)
			if item.node_id not in self._done:
				self._done.add(item.node_id)
				params = fn_t.params if isinstance(fn_t, Function) else ()
				declared = fn_t.ret if isinstance(fn_t, Function) else None
				self.check_function(item, params, declared, self.scope)
			return
		if isinstance(item, A.VariableDecl):
			sym = self.info.symbols.get(item.name)
			if sym is not None and sym.decl is item:
				self.program.symbol_type(sym)
				return
			self.check_stmt(item, self.scope, self.module_ctx)
			return
		if isinstance(item, A.Stmt):
			self.check_stmt(item, self.scope, self.module_ctx)

	# Functions ---------------------------------------------------------------

	def check_function(
		self,
		decl: A.FunctionDecl,
		params: Sequence[Type],
		declared: Optional[Type],
		parent: Scope,
	) -> Type:
		"""Check a function body; returns the declared or inferred return type."""
		scope = parent.child("function")
		for p, t in zip(decl.params, params):
			self.define_local(scope, p.name, SymbolKind.PARAM, t, p, (p.node_id, p.name))
		result = declared if isinstance(declared, Result) else None
		ctx = FnContext(decl.name, declared, result)
		if result is not None:
			self.checked.fn_results[decl.node_id] = result
		if isinstance(decl.body, A.Block):
			self.check_block_in(decl.body, scope, ctx)
			if declared is not None:
				ret = declared
				needs_value = declared != VOID and not (result is not None and result.ok == VOID)
				if needs_value and not _always_returns(decl.body):
					self.error(f"function '{decl.name}' may finish without returning a value", decl, code="E-RETURN")
			else:
				ret = self._infer_return(decl, ctx.returns)
		else:
			t = self.check_return_value(decl.body, scope, ctx, declared)
			ret = declared if declared is not None else t
		self.checked.fn_types[decl.node_id] = Function(tuple(params), ret)
		return ret

	def _infer_return(self, decl: A.FunctionDecl, returns: List[Type]) -> Type:
		if not returns:
			return VOID
		values = [t for t in returns if t != VOID]
		if values and len(values) != len(returns):
			self.error(f"function '{decl.name}' returns a value on some paths only", decl, code="E-RETURN")
		if not values:
			return VOID
		ret = lub(values)
		if isinstance(ret, Result):
			self.error(f"function '{decl.name}' returns a result; declare its return type", decl, code="E-RETURN")
			return UNKNOWN
		return ret

	def check_return_value(self, value: A.Expr, scope: Scope, ctx: FnContext, expected: Optional[Type]) -> Type:
		result = ctx.result
		if result is None:
			t = self.expr(value, scope, ctx, expected)
			if expected is not None:
				if expected == VOID:
					self.error("a void function cannot return a value", value, code="E-RETURN")
				else:
					self.expect_assignable(t, expected, value, "return value")
			ctx.returns.append(t)
			return t
		t = self.expr(value, scope, ctx, result)
		ctx.returns.append(result)
		if isinstance(t, Result):
			self.checked.return_wraps[value.node_id] = ReturnWrap.RAW
			self.expect_assignable(t.ok, result.ok, value, "ok value")
			if not (is_assignable(t.err, result.err) or error_widens_to(t.err, result.err)):
				self.error(f"error type {t.err.render()} does not match declared {result.err.render()}", value)
			return result
		if is_assignable(t, result.ok) and result.ok != VOID:
			self.checked.return_wraps[value.node_id] = ReturnWrap.OK
		elif is_valid_error_type(t) and not isinstance(t, Unknown) and error_widens_to(t, result.err):
			self.checked.return_wraps[value.node_id] = ReturnWrap.ERR
		elif result.ok == VOID and t == VOID:
			# `= expr` body of a void-ok result function: run it, then ok(null).
			self.checked.return_wraps[value.node_id] = ReturnWrap.OK
		else:
			self.error(
				f"cannot return {t.render()} from a function returning {result.render()}",
				value,
				code="E-RETURN",
			)
		return result

	# Statements --------------------------------------------------------------

	def define_local(self, scope: Scope, name: str, kind: SymbolKind, t: Type, node: A.Node, key) -> Symbol:
		sym = Symbol(name, kind, self.module_id, decl=node, type=t, key=key, span=node.loc, resolved=True)
		scope.define(sym)
		return sym

	def _bind(self, scope: Scope, name: str, t: Type, node: A.Node, key: Tuple[int, str]) -> None:
		if name == "_":
			return
		existing = scope.lookup(name)
		if existing is not None and existing.decl is not node and existing.kind is not SymbolKind.BUILTIN:
			self.error(
				f"'{name}' is already bound (at {existing.span.short()}); bindings are immutable, "
				f"use '{name}.mut = ...' to change it",
				node,
				kind=DiagnosticKind.MUTABILITY,
				code="E-MUT",
			)
			return
		self.define_local(scope, name, SymbolKind.VARIABLE, t, node, key)

	def check_block_in(self, block: A.Block, scope: Scope, ctx: FnContext) -> None:
		"""Check `block` with `scope` as its own scope (the caller created it)."""
		for stmt in block.statements:
			self.check_stmt(stmt, scope, ctx)
			if isinstance(stmt, A.IfStmt) and stmt.else_block is None and _always_exits(stmt.then_block):
				# `if x == null { return }` narrows `x` for the rest of the block.
				test = null_test(stmt.cond)
				if test is not None and not test[1]:
					narrowed = self.narrowing_scope(scope, stmt.cond, positive=False).narrowings
					scope.narrowings.update(narrowed)

	def _block(self, block: A.Block, scope: Scope, ctx: FnContext) -> None:
		self.check_block_in(block, scope.child(), ctx)

	def check_stmt(self, stmt: A.Stmt, scope: Scope, ctx: FnContext) -> None:
		if isinstance(stmt, A.ExprStmt):
			self.expr(stmt.expr, scope, ctx)
		elif isinstance(stmt, A.VariableDecl):
			t = self._record(stmt, self._binding_type(stmt, scope, ctx))
			self._bind(scope, stmt.name, t, stmt, (stmt.node_id, stmt.name))
		elif isinstance(stmt, A.MutationStmt):
			self._check_mutation(stmt, scope, ctx)
		elif isinstance(stmt, A.IndexAssign):
			self._check_index_assign(stmt, scope, ctx)
		elif isinstance(stmt, A.DestructureStmt):
			self._check_destructure(stmt, scope, ctx)
		elif isinstance(stmt, A.IfStmt):
			self._check_if(stmt, scope, ctx)
		elif isinstance(stmt, A.WhileStmt):
			self._check_condition(stmt.cond, scope, ctx, "while")
			ctx.loop_depth += 1
			self.check_block_in(stmt.body, self.narrowing_scope(scope, stmt.cond, positive=True), ctx)
			ctx.loop_depth -= 1
		elif isinstance(stmt, A.ForStmt):
			self._check_for(stmt, scope, ctx)
		elif isinstance(stmt, A.ReturnStmt):
			self._check_return(stmt, scope, ctx)
		elif isinstance(stmt, (A.BreakStmt, A.ContinueStmt)):
			if ctx.loop_depth == 0:
				word = "break" if isinstance(stmt, A.BreakStmt) else "continue"
				self.error(f"'{word}' outside a loop", stmt)
		elif isinstance(stmt, A.FunctionDecl):
			self._check_nested_function(stmt, scope)
		else:
			self.error(f"unsupported statement {type(stmt).__name__}", stmt)

	def _binding_type(self, stmt: A.VariableDecl, scope: Scope, ctx: FnContext) -> Type:
		declared = self.resolver.resolve(stmt.type_expr) if stmt.type_expr is not None else None
		t = self.expr(stmt.value, scope, ctx, declared)
		if declared is not None:
			self.expect_assignable(t, declared, stmt.value, f"'{stmt.name}'")
			return declared
		if t == VOID:
			return self.error(f"cannot bind '{stmt.name}' to a void expression", stmt.value)
		if t == NULL:
			return self.error(f"cannot infer a type for '{stmt.name}' from null; annotate it (e.g. '{stmt.name}: str? = null')", stmt)
		return t

	def _check_mutation(self, stmt: A.MutationStmt, scope: Scope, ctx: FnContext) -> None:
		sym = scope.lookup(stmt.target)
		expected = self.program.symbol_type(sym) if sym is not None and sym.kind in (SymbolKind.VARIABLE, SymbolKind.PARAM) else None
		value_t = self.expr(stmt.value, scope, ctx, expected if stmt.op == "=" else None)
		if sym is None:
			self.error(f"undefined name '{stmt.target}'", stmt, code="E-UNDEFINED")
			return
		if not stmt.accessor:
			self.error(
				f"cannot modify immutable '{stmt.target}' directly; use '{stmt.target}.mut {stmt.op} ...'",
				stmt,
				kind=DiagnosticKind.MUTABILITY,
				code="E-MUT",
			)
			return
		if sym.kind not in (SymbolKind.VARIABLE, SymbolKind.PARAM):
			what = "an imported binding" if sym.kind is SymbolKind.IMPORT else f"a {sym.kind.value}"
			self.error(f"'{stmt.target}' is {what} and cannot be mutated", stmt, kind=DiagnosticKind.MUTABILITY, code="E-MUT")
			return
		if sym.key is not None:
			self.checked.mutated.add(sym.key)
		current = expected if expected is not None else UNKNOWN
		self._record(stmt, current)
		_drop_narrowing(scope, stmt.target)
		if stmt.op == "=":
			self.expect_assignable(value_t, current, stmt.value, f"'{stmt.target}'")
			return
		self._check_compound(stmt.op, current, value_t, stmt, stmt.target)

	def _check_compound(self, op: str, current: Type, value_t: Type, node: A.Node, what: str) -> None:
		if isinstance(current, Unknown) or isinstance(value_t, Unknown):
			return
		base = op[:-1]
		if base == "+" and current == STR and value_t == STR:
			return
		if is_numeric(current) and is_numeric(value_t):
			if current == INT and value_t == FLOAT:
				self.error(f"'{what} {op} float' would turn an int into a float", node)
			elif base == "%" and FLOAT in (current, value_t):
				self.error("operator '%' expects int operands", node)
			return
		self.error(f"operator '{op}' is not defined for {current.render()} and {value_t.render()}", node)

	def _check_index_assign(self, stmt: A.IndexAssign, scope: Scope, ctx: FnContext) -> None:
		target = stmt.target
		obj_t = self.expr(target.obj, scope, ctx)
		if isinstance(obj_t, Collection) and obj_t.kind == "list":
			idx_t = self.expr(target.index, scope, ctx)
			if not isinstance(idx_t, Unknown) and idx_t != INT:
				self.error(f"index must be int, found {idx_t.render()}", target.index)
			slot = obj_t.elem
		elif isinstance(obj_t, Collection) and obj_t.kind == "map":
			key_t = self.expr(target.index, scope, ctx, obj_t.elems[0])
			self.expect_assignable(key_t, obj_t.elems[0], target.index, "map key")
			slot = obj_t.elems[1]
		else:
			self.expr(target.index, scope, ctx)
			self.expr(stmt.value, scope, ctx)
			if not isinstance(obj_t, Unknown):
				self.error(f"type {obj_t.render()} does not support indexed assignment", target)
			return
		self._record(target, slot)
		value_t = self.expr(stmt.value, scope, ctx, slot if stmt.op == "=" else None)
		if stmt.op == "=":
			self.expect_assignable(value_t, slot, stmt.value, "element")
		else:
			self._check_compound(stmt.op, slot, value_t, stmt, "element")

	def _check_destructure(self, stmt: A.DestructureStmt, scope: Scope, ctx: FnContext) -> None:
		value = stmt.value
		if isinstance(value, A.Call):
			self._destructure_call_id = value.node_id
		try:
			t = self.expr(value, scope, ctx)
		finally:
			self._destructure_call_id = None
		rc = self.checked.result_calls.get(value.node_id)
		if rc is not None and rc.mode is ResultMode.DESTRUCTURE:
			if len(stmt.names) != 2:
				self.error("destructuring a result binds exactly two names: 'value, err = ...'", stmt)
				types: Sequence[Type] = [UNKNOWN] * len(stmt.names)
			else:
				types = [nullable(rc.ok) if rc.ok != VOID else NULL, nullable(rc.err)]
		elif isinstance(t, TupleType):
			if len(t.elems) != len(stmt.names):
				self.error(f"cannot destructure {t.render()} into {len(stmt.names)} names", stmt)
				types = [UNKNOWN] * len(stmt.names)
			else:
				types = t.elems
		else:
			if not isinstance(t, Unknown):
				self.error(f"only result-returning calls and tuples can be destructured, found {t.render()}", value)
			types = [UNKNOWN] * len(stmt.names)
		for name, nt in zip(stmt.names, types):
			self._bind(scope, name, nt, stmt, (stmt.node_id, name))

	def _check_condition(self, cond: A.Expr, scope: Scope, ctx: FnContext, what: str) -> None:
		t = self.expr(cond, scope, ctx)
		if not isinstance(t, Unknown) and t != BOOL:
			self.error(f"{what} condition must be bool, found {t.render()}", cond)

	def _check_if(self, stmt: A.IfStmt, scope: Scope, ctx: FnContext) -> None:
		self._check_condition(stmt.cond, scope, ctx, "if")
		self.check_block_in(stmt.then_block, self.narrowing_scope(scope, stmt.cond, positive=True), ctx)
		if stmt.else_block is None:
			return
		else_scope = self.narrowing_scope(scope, stmt.cond, positive=False)
		if isinstance(stmt.else_block, A.IfStmt):
			self._check_if(stmt.else_block, else_scope, ctx)
		else:
			self.check_block_in(stmt.else_block, else_scope, ctx)

	def _check_for(self, stmt: A.ForStmt, scope: Scope, ctx: FnContext) -> None:
		it = self.expr(stmt.iterable, scope, ctx)
		index_t: Type = INT
		if isinstance(it, Collection) and it.kind in ("list", "set"):
			item_t = it.elem
		elif isinstance(it, Collection) and it.kind == "map":
			if stmt.index_name is not None:
				index_t, item_t = it.elems
			else:
				item_t = TupleType(it.elems)
		elif it == STR:
			item_t = STR
		elif isinstance(it, Unknown):
			item_t = UNKNOWN
		elif it == DYNAMIC:
			item_t = self._dynamic_misuse(stmt.iterable)
		else:
			item_t = self.error(f"type {it.render()} is not iterable", stmt.iterable)
		body = scope.child()
		if stmt.index_name is not None:
			self._bind(body, stmt.index_name, index_t, stmt, (stmt.node_id, stmt.index_name))
		self._bind(body, stmt.item_name, item_t, stmt, (stmt.node_id, stmt.item_name))
		ctx.loop_depth += 1
		self.check_block_in(stmt.body, body, ctx)
		ctx.loop_depth -= 1

	def _check_return(self, stmt: A.ReturnStmt, scope: Scope, ctx: FnContext) -> None:
		if ctx.is_module:
			self.error("'return' outside a function", stmt, code="E-RETURN")
			if stmt.value is not None:
				self.expr(stmt.value, scope, ctx)
			return
		if stmt.value is None:
			needs = ctx.result.ok if ctx.result is not None else ctx.declared_ret
			if needs is not None and needs != VOID and not isinstance(needs, Unknown):
				self.error(f"missing return value of type {needs.render()}", stmt, code="E-RETURN")
			ctx.returns.append(VOID)
			return
		self.check_return_value(stmt.value, scope, ctx, ctx.declared_ret)

	def _check_nested_function(self, decl: A.FunctionDecl, scope: Scope) -> None:
		params = tuple(
			self.resolver.resolve(p.type_expr) if p.type_expr is not None else self.error(
				f"parameter '{p.name}' of '{decl.name}' needs a type annotation", p
			)
			for p in decl.params
		)
		declared = self.resolver.resolve(decl.ret_type) if decl.ret_type is not None else None
		existing = scope.lookup(decl.name)
		if existing is not None and existing.kind is not SymbolKind.BUILTIN:
			self.error(f"'{decl.name}' is already bound (at {existing.span.short()})", decl, kind=DiagnosticKind.MUTABILITY, code="E-MUT")
		sym = self.define_local(scope, decl.name, SymbolKind.FUNCTION, Function(params, declared or UNKNOWN), decl, None)
		if declared is None:
			sym.resolving = True
		ret = self.check_function(decl, params, declared, scope)
		sym.type = Function(params, ret)
		sym.resolving = False


def _always_returns(block: A.Block) -> bool:
	if not block.statements:
		return False
	last = block.statements[-1]
	if isinstance(last, A.ReturnStmt):
		return True
	if isinstance(last, A.IfStmt):
		return _if_returns(last)
	if isinstance(last, A.WhileStmt):
		# `while true { ... }` without a break only leaves through return.
		return isinstance(last.cond, A.Literal) and last.cond.value is True and not _has_break(last.body)
	return False


def _if_returns(stmt: A.IfStmt) -> bool:
	if stmt.else_block is None or not _always_returns(stmt.then_block):
		return False
	if isinstance(stmt.else_block, A.IfStmt):
		return _if_returns(stmt.else_block)
	return _always_returns(stmt.else_block)


def _always_exits(block: A.Block) -> bool:
	if not block.statements:
		return False
	last = block.statements[-1]
	return isinstance(last, (A.ReturnStmt, A.BreakStmt, A.ContinueStmt)) or _always_returns(block)


def _has_break(block: A.Block) -> bool:
	for stmt in block.statements:
		if isinstance(stmt, A.BreakStmt):
			return True
		if isinstance(stmt, A.IfStmt):
			if _has_break(stmt.then_block):
				return True
			other = stmt.else_block
			while isinstance(other, A.IfStmt):
				if _has_break(other.then_block):
					return True
				other = other.else_block
			if other is not None and _has_break(other):
				return True
	return False


def _drop_narrowing(scope: Scope, name: str) -> None:
	"""Forget flow narrowing of `name` after it is reassigned."""
	s: Optional[Scope] = scope
	while s is not None:
		if name in s.narrowings:
			del s.narrowings[name]
			return
		if name in s.names:
			return
		s = s.parent


__all__ = ["ModuleChecker"]
