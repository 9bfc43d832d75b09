# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Automatic error propagation (stage1).

Pipeline placement:
  parse → check (decorated AST) → [this pass] → link → codegen

Every call the checker recorded as result-valued is rewritten according to its
mode:

* PROPAGATE (inside a result-returning function or lambda):

    const __r1 = callee(args)
    if (is_err(__r1)) return __r1          // same error type
    if (is_err(__r1)) return err(widen(__r1.error))   // widened to `error`
    // the expression's value is __r1.value

* DESTRUCTURE (`value, err = callee()`): a two-branch conditional binding the
  payload or the error; nothing returns early.

* UNWRAP (outside result functions): `unwrap(callee(args))`, which throws
  at runtime on an error outcome.

`return` values inside result functions are wrapped in ok/err as classified by
the checker. Evaluation order is preserved: when a later operand produces
prefix statements, earlier operands are spilled to temporaries first, and the
right side of `&&`, `||`, `?:`, `??` and the arms of `match` are lowered to
explicit conditionals so they still evaluate lazily.

The input tree is not modified. Rebuilt nodes get fresh node ids; `origin`
maps each one back to the node the checker decorated.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..checker.decorations import CheckedModule, ResultCall, ResultMode, ReturnWrap
from ..core.diagnostics import Diagnostic, DiagnosticKind
from ..core.types_core import VOID, Result, Type, Unknown, error_widens_to, nullable
from ..parser import ast as A

logger = logging.getLogger(__name__)


@dataclass
class LoweredModule:
	"""A checked module after propagation; codegen consumes this."""

	checked: CheckedModule
	ast: A.Module
	# New node id -> id of the decorated node it was rebuilt from.
	origin: Dict[int, int] = field(default_factory=dict)
	# Types of synthetic bindings (by their own node id).
	synthetic_types: Dict[int, Type] = field(default_factory=dict)
	diagnostics: List[Diagnostic] = field(default_factory=list)

	@property
	def module_id(self) -> str:
		return self.checked.module_id

	def key(self, node: A.Node) -> int:
		return self.origin.get(node.node_id, node.node_id)

	def type_of(self, node: A.Node) -> Optional[Type]:
		t = self.synthetic_types.get(node.node_id)
		if t is not None:
			return t
		return self.checked.types.get(self.key(node))


@dataclass
class _FnState:
	name: str
	result: Optional[Result]


_Rewrite = Tuple[List[A.Stmt], A.Expr]


class PropagationRewriter:
	"""Rewrite one checked module; see the module docstring for the expansion."""

	def __init__(self, checked: CheckedModule) -> None:
		self.checked = checked
		self.lowered = LoweredModule(checked, checked.ast)
		self._temp_counter = 0
		self._state = _FnState("<module>", None)

	def _fresh(self, prefix: str) -> str:
		"""Deterministic fresh temporary name."""
		self._temp_counter += 1
		return f"{prefix}{self._temp_counter}"

	def _copy(self, node, **changes):
		"""Rebuild `node` with `changes`, remembering which node it came from."""
		new = dataclasses.replace(node, **changes)
		self.lowered.origin[new.node_id] = self.lowered.key(node)
		return new

	def _diag(self, message: str, node: A.Node) -> None:
		self.lowered.diagnostics.append(
			Diagnostic(
				message,
				kind=DiagnosticKind.PROPAGATION,
				code="E-PROPAGATE",
				phase="propagate",
				span=node.loc,
			)
		)

	# Public entry point -------------------------------------------------

	def rewrite_module(self) -> LoweredModule:
		items: List[A.Node] = []
		for item in self.checked.ast.items:
			inner = A.unwrap_item(item)
			if isinstance(inner, A.FunctionDecl):
				fn = self._rewrite_function(inner)
				if isinstance(item, A.ExposeDecl):
					items.append(self._copy(item, fn=fn))
				elif isinstance(item, A.ExportDecl):
					items.append(self._copy(item, decl=fn))
				else:
					items.append(fn)
			elif isinstance(inner, A.Stmt):
				stmts = self._rewrite_stmt(inner)
				if isinstance(item, A.ExportDecl):
					# `export x = <expr>`: prefixes run first, the binding stays exported.
					items.extend(stmts[:-1])
					items.append(self._copy(item, decl=stmts[-1]))
				else:
					items.extend(stmts)
			else:
				items.append(item)
		self.lowered.ast = self._copy(self.checked.ast, items=tuple(items))
		logger.debug("%s: propagation done (%d temporaries)", self.checked.module_id, self._temp_counter)
		return self.lowered

	# Functions ------------------------------------------------------------

	def _with_state(self, state: _FnState):
		saved = self._state
		self._state = state
		return saved

	def _rewrite_function(self, fn: A.FunctionDecl) -> A.FunctionDecl:
		result = self.checked.fn_results.get(self.lowered.key(fn))
		saved = self._with_state(_FnState(fn.name, result))
		try:
			body = self._rewrite_body(fn.body, result, fn)
		finally:
			self._state = saved
		return self._copy(fn, body=body)

	def _rewrite_body(self, body, result: Optional[Result], owner: A.Node):
		if isinstance(body, A.Block):
			stmts = self._rewrite_stmts(body.statements)
			if result is not None and result.ok == VOID and not _ends_with_return(stmts):
				stmts.append(A.ReturnStmt(owner.loc, A.WrapOk(owner.loc)))
			return self._copy(body, statements=tuple(stmts))
		if result is None:
			pfx, expr = self._rewrite_expr(body)
			if not pfx:
				return expr
			return A.Block(body.loc, tuple(pfx + [A.ReturnStmt(body.loc, expr)]))
		# Expression body of a result function: lower to a block with a wrapped return.
		stmts = self._rewrite_return(A.ReturnStmt(body.loc, body), body)
		return A.Block(body.loc, tuple(stmts))

	# Statement rewriting -----------------------------------------------

	def _rewrite_stmts(self, stmts: Sequence[A.Stmt]) -> List[A.Stmt]:
		out: List[A.Stmt] = []
		for stmt in stmts:
			out.extend(self._rewrite_stmt(stmt))
		return out

	def _rewrite_block(self, block: A.Block) -> A.Block:
		return self._copy(block, statements=tuple(self._rewrite_stmts(block.statements)))

	def _rewrite_stmt(self, stmt: A.Stmt) -> List[A.Stmt]:
		"""Return a list of rewritten statements replacing the input stmt."""
		if isinstance(stmt, A.ExprStmt):
			prefix, expr = self._rewrite_expr(stmt.expr)
			if prefix and isinstance(expr, (A.ResultValue, A.Name, A.Literal)):
				# The value of a hoisted call used as a statement is unused.
				return prefix
			return prefix + [self._copy(stmt, expr=expr)]
		if isinstance(stmt, A.VariableDecl):
			prefix, expr = self._rewrite_expr(stmt.value)
			return prefix + [self._copy(stmt, value=expr)]
		if isinstance(stmt, A.MutationStmt):
			prefix, expr = self._rewrite_expr(stmt.value)
			return prefix + [self._copy(stmt, value=expr)]
		if isinstance(stmt, A.IndexAssign):
			prefix, (obj, index, value) = self._rewrite_all([stmt.target.obj, stmt.target.index, stmt.value])
			target = self._copy(stmt.target, obj=obj, index=index)
			return prefix + [self._copy(stmt, target=target, value=value)]
		if isinstance(stmt, A.DestructureStmt):
			return self._rewrite_destructure(stmt)
		if isinstance(stmt, A.ReturnStmt):
			return self._rewrite_return(stmt, stmt.value)
		if isinstance(stmt, A.IfStmt):
			return self._rewrite_if(stmt)
		if isinstance(stmt, A.WhileStmt):
			return self._rewrite_while(stmt)
		if isinstance(stmt, A.ForStmt):
			prefix, iterable = self._rewrite_expr(stmt.iterable)
			return prefix + [self._copy(stmt, iterable=iterable, body=self._rewrite_block(stmt.body))]
		if isinstance(stmt, A.FunctionDecl):
			return [self._rewrite_function(stmt)]
		if isinstance(stmt, (A.BreakStmt, A.ContinueStmt)):
			return [stmt]
		raise NotImplementedError(f"PropagationRewriter does not handle stmt {type(stmt).__name__}")

	def _rewrite_return(self, stmt: A.ReturnStmt, value: Optional[A.Expr]) -> List[A.Stmt]:
		result = self._state.result
		if value is None:
			if result is not None:
				return [self._copy(stmt, value=A.WrapOk(stmt.loc))]
			return [stmt]
		prefix, expr = self._rewrite_expr(value)
		if result is None:
			return prefix + [self._copy(stmt, value=expr)]
		wrap = self.checked.return_wraps.get(self.lowered.key(value), ReturnWrap.RAW)
		loc = value.loc
		if wrap is ReturnWrap.OK:
			if result.ok == VOID:
				# Void payload: evaluate for effects, then return ok(null).
				if not isinstance(expr, (A.Name, A.Literal, A.ResultValue)):
					prefix.append(A.ExprStmt(loc, expr))
				wrapped: A.Expr = A.WrapOk(loc)
			else:
				wrapped = A.WrapOk(loc, expr)
		elif wrap is ReturnWrap.ERR:
			value_t = self.checked.types.get(self.lowered.key(value))
			if value_t is not None and value_t != result.err and not isinstance(value_t, Unknown):
				expr = A.WidenError(loc, expr)
			wrapped = A.WrapErr(loc, expr)
		else:
			wrapped = expr
		return prefix + [A.ReturnStmt(stmt.loc, wrapped)]

	def _rewrite_if(self, stmt: A.IfStmt) -> List[A.Stmt]:
		prefix, cond = self._rewrite_expr(stmt.cond)
		then_block = self._rewrite_block(stmt.then_block)
		else_block = None
		if isinstance(stmt.else_block, A.IfStmt):
			lowered = self._rewrite_if(stmt.else_block)
			if len(lowered) == 1:
				else_block = lowered[0]
			else:
				# `else if` whose condition needed prefixes: `else { prefix; if ... }`.
				else_block = A.Block(stmt.else_block.loc, tuple(lowered))
		elif stmt.else_block is not None:
			else_block = self._rewrite_block(stmt.else_block)
		return prefix + [self._copy(stmt, cond=cond, then_block=then_block, else_block=else_block)]

	def _rewrite_while(self, stmt: A.WhileStmt) -> List[A.Stmt]:
		prefix, cond = self._rewrite_expr(stmt.cond)
		body = self._rewrite_block(stmt.body)
		if not prefix:
			return [self._copy(stmt, cond=cond, body=body)]
		# The condition's prefixes must run on every iteration:
		# while (true) { prefix; if (!cond) break; body }
		loc = stmt.loc
		exit_check = A.IfStmt(loc, A.Unary(loc, "!", cond), A.Block(loc, (A.BreakStmt(loc),)))
		loop_body = A.Block(body.loc, tuple(prefix + [exit_check] + list(body.statements)))
		return [self._copy(stmt, cond=A.Literal(loc, True, "bool"), body=loop_body)]

	def _rewrite_destructure(self, stmt: A.DestructureStmt) -> List[A.Stmt]:
		value = stmt.value
		rc = self.checked.result_calls.get(self.lowered.key(value))
		if rc is None or rc.mode is not ResultMode.DESTRUCTURE or not isinstance(value, A.Call):
			prefix, expr = self._rewrite_expr(value)
			return prefix + [self._copy(stmt, value=expr)]
		prefix, call = self._rewrite_call_parts(value)
		loc = stmt.loc
		tmp = self._fresh("__r")
		out = prefix + [A.ResultTemp(loc, tmp, call)]
		names = list(stmt.names) + ["_"] * (2 - len(stmt.names))
		value_name, err_name = names[0], names[1]
		then_stmts: List[A.Stmt] = []
		else_stmts: List[A.Stmt] = []
		if value_name != "_":
			decl = A.DeclareStmt(loc, value_name, A.Literal(loc, None, "null"))
			self.lowered.synthetic_types[decl.node_id] = nullable(rc.ok) if rc.ok != VOID else nullable(VOID)
			out.append(decl)
			else_stmts.append(A.MutationStmt(loc, value_name, "=", A.ResultValue(loc, A.Name(loc, tmp))))
		if err_name != "_":
			decl = A.DeclareStmt(loc, err_name, A.Literal(loc, None, "null"))
			self.lowered.synthetic_types[decl.node_id] = nullable(rc.err)
			out.append(decl)
			then_stmts.append(A.MutationStmt(loc, err_name, "=", A.ResultError(loc, A.Name(loc, tmp))))
		if then_stmts or else_stmts:
			out.append(
				A.IfStmt(
					loc,
					A.ResultIsErr(loc, A.Name(loc, tmp)),
					A.Block(loc, tuple(then_stmts)),
					A.Block(loc, tuple(else_stmts)) if else_stmts else None,
				)
			)
		return out

	# Expression rewriting ----------------------------------------------

	def _is_stable(self, expr: A.Expr) -> bool:
		"""Whether evaluating `expr` later gives the same value as evaluating it now."""
		if isinstance(expr, (A.Literal, A.Lambda)):
			return True
		if isinstance(expr, A.Name):
			sym = self.checked.name_symbols.get(self.lowered.key(expr))
			if sym is None:
				# Synthetic temporaries are final once their prefix has run.
				return True
			return sym.key is None or sym.key not in self.checked.mutated
		return False

	def _rewrite_all(self, exprs: Sequence[A.Expr]) -> Tuple[List[A.Stmt], List[A.Expr]]:
		"""
		Rewrite sibling operands left to right.

		Operands evaluated before the last one that needs prefix statements are
		spilled to temporaries so they keep their evaluation order.
		"""
		parts = [self._rewrite_expr(e) for e in exprs]
		last = max((i for i, (pfx, _) in enumerate(parts) if pfx), default=-1)
		prefix: List[A.Stmt] = []
		out: List[A.Expr] = []
		for i, (pfx, expr) in enumerate(parts):
			prefix.extend(pfx)
			if i < last and not self._is_stable(expr):
				name = self._fresh("__t")
				prefix.append(A.ResultTemp(expr.loc, name, expr))
				expr = A.Name(expr.loc, name)
			out.append(expr)
		return prefix, out

	def _rewrite_expr(self, expr: A.Expr) -> _Rewrite:
		"""Return (prefix_stmts, rewritten_expr) for a given expression."""
		if isinstance(expr, (A.Literal, A.Name)):
			return [], expr
		if isinstance(expr, A.Call):
			return self._rewrite_call(expr)
		if isinstance(expr, A.Binary):
			if expr.op in ("&&", "||", "?:", "??"):
				return self._rewrite_short_circuit(expr)
			prefix, (left, right) = self._rewrite_all([expr.left, expr.right])
			return prefix, self._rebuild(expr, left=left, right=right)
		if isinstance(expr, A.Unary):
			prefix, operand = self._rewrite_expr(expr.operand)
			return prefix, self._rebuild(expr, operand=operand)
		if isinstance(expr, A.Member):
			prefix, obj = self._rewrite_expr(expr.obj)
			return prefix, self._rebuild(expr, obj=obj)
		if isinstance(expr, A.Index):
			prefix, (obj, index) = self._rewrite_all([expr.obj, expr.index])
			return prefix, self._rebuild(expr, obj=obj, index=index)
		if isinstance(expr, A.MutAccess):
			return [], expr
		if isinstance(expr, (A.ListLiteral, A.TupleLiteral)):
			prefix, items = self._rewrite_all(expr.items)
			return prefix, self._rebuild(expr, items=tuple(items))
		if isinstance(expr, A.ObjectLiteral):
			prefix, values = self._rewrite_all([e.value for e in expr.entries])
			entries = tuple(
				e if e.value is v else self._copy(e, value=v) for e, v in zip(expr.entries, values)
			)
			return prefix, self._rebuild(expr, entries=entries)
		if isinstance(expr, A.InterpolatedString):
			holes = [p for p in expr.parts if isinstance(p, A.Expr)]
			prefix, new_holes = self._rewrite_all(holes)
			it = iter(new_holes)
			parts = tuple(next(it) if isinstance(p, A.Expr) else p for p in expr.parts)
			return prefix, self._rebuild(expr, parts=parts)
		if isinstance(expr, A.Lambda):
			return [], self._rewrite_lambda(expr)
		if isinstance(expr, A.MatchExpr):
			return self._rewrite_match(expr)
		if isinstance(expr, A.MarkupElement):
			return self._rewrite_markup(expr)
		raise NotImplementedError(f"PropagationRewriter does not handle expr {type(expr).__name__}")

	def _rebuild(self, expr: A.Expr, **changes) -> A.Expr:
		if all(getattr(expr, k) is v for k, v in changes.items()):
			return expr
		return self._copy(expr, **changes)

	def _rewrite_call_parts(self, call: A.Call) -> Tuple[List[A.Stmt], A.Call]:
		callee = call.callee
		if isinstance(callee, A.Member):
			# Method call: the receiver is an operand, the member itself is not a value.
			prefix, exprs = self._rewrite_all([callee.obj, *call.args])
			new_callee = self._rebuild(callee, obj=exprs[0])
			args = exprs[1:]
		else:
			prefix, exprs = self._rewrite_all([callee, *call.args])
			new_callee, args = exprs[0], exprs[1:]
		return prefix, self._rebuild(call, callee=new_callee, args=tuple(args))  # type: ignore[return-value]

	def _rewrite_call(self, call: A.Call) -> _Rewrite:
		prefix, new_call = self._rewrite_call_parts(call)
		rc = self.checked.result_calls.get(self.lowered.key(call))
		if rc is None:
			return prefix, new_call
		if rc.mode is ResultMode.PROPAGATE and self._state.result is not None:
			return self._expand_propagation(prefix, new_call, rc)
		if rc.mode is ResultMode.DESTRUCTURE:
			# Destructuring is lowered at statement level.
			return prefix, new_call
		return prefix, A.Unwrap(call.loc, new_call)

	def _expand_propagation(self, prefix: List[A.Stmt], call: A.Expr, rc: ResultCall) -> _Rewrite:
		"""
		Desugar a propagating call:

		  const __rN = <call>
		  if (is_err(__rN)) return <error>
		  // expression value is __rN.value
		"""
		loc = call.loc
		tmp = self._fresh("__r")
		bind = A.ResultTemp(loc, tmp, call)
		check = A.IfStmt(
			loc,
			A.ResultIsErr(loc, A.Name(loc, tmp)),
			A.Block(loc, (A.ReturnStmt(loc, self._error_return(tmp, rc, call)),)),
		)
		return prefix + [bind, check], A.ResultValue(loc, A.Name(loc, tmp))

	def _error_return(self, tmp: str, rc: ResultCall, call: A.Expr) -> A.Expr:
		caller = self._state.result
		assert caller is not None
		loc = call.loc
		if rc.err == caller.err or isinstance(rc.err, Unknown) or isinstance(caller.err, Unknown):
			# Same error type: hand the callee's result object back unchanged.
			return A.Name(loc, tmp)
		if error_widens_to(rc.err, caller.err):
			return A.WrapErr(loc, A.WidenError(loc, A.ResultError(loc, A.Name(loc, tmp))))
		self._diag(
			f"error type {rc.err.render()} of '{rc.callee}' does not match the error type "
			f"{caller.err.render()} of '{self._state.name}'; handle it with 'value, err = ...' "
			f"or declare '{self._state.name}' to return result<..., error>",
			call,
		)
		return A.Name(loc, tmp)

	def _rewrite_short_circuit(self, expr: A.Binary) -> _Rewrite:
		left_pfx, left = self._rewrite_expr(expr.left)
		right_pfx, right = self._rewrite_expr(expr.right)
		if not right_pfx:
			return left_pfx, self._rebuild(expr, left=left, right=right)
		# let __tN = left; if (<left selects right>) { right_pfx; __tN = right }
		loc = expr.loc
		tmp = self._fresh("__t")
		decl = A.DeclareStmt(loc, tmp, left)
		t = self.checked.types.get(self.lowered.key(expr))
		if t is not None:
			self.lowered.synthetic_types[decl.node_id] = t
		name = A.Name(loc, tmp)
		if expr.op == "&&":
			cond: A.Expr = name
		elif expr.op == "??":
			cond = A.Binary(loc, "==", name, A.Literal(loc, None, "null"))
		else:
			cond = A.Unary(loc, "!", name)
		assign = A.MutationStmt(loc, tmp, "=", right)
		branch = A.IfStmt(loc, cond, A.Block(loc, tuple(right_pfx + [assign])))
		return left_pfx + [decl, branch], A.Name(loc, tmp)

	def _rewrite_lambda(self, lam: A.Lambda) -> A.Lambda:
		result = self.checked.fn_results.get(self.lowered.key(lam))
		saved = self._with_state(_FnState("<lambda>", result))
		try:
			body = self._rewrite_body(lam.body, result, lam)
		finally:
			self._state = saved
		return self._rebuild(lam, body=body)  # type: ignore[return-value]

	def _rewrite_match(self, m: A.MatchExpr) -> _Rewrite:
		subj_pfx: List[A.Stmt] = []
		subject = m.subject
		if subject is not None:
			subj_pfx, subject = self._rewrite_expr(subject)
		arms = []
		lowered = False
		for arm in m.arms:
			pat_pfx, pattern = self._rewrite_expr(arm.pattern) if not arm.is_wildcard else ([], arm.pattern)
			val_pfx, value = self._rewrite_expr(arm.value)
			lowered = lowered or bool(pat_pfx or val_pfx)
			arms.append((arm, pat_pfx, pattern, val_pfx, value))
		if not lowered:
			new_arms = tuple(
				self._rebuild(arm, pattern=pattern, value=value) for arm, _, pattern, _, value in arms
			)
			return subj_pfx, self._rebuild(m, subject=subject, arms=new_arms)
		# An arm needs prefix statements: lower the whole match to an if-chain
		# so the prefixes run only when their arm is selected.
		loc = m.loc
		result = self._fresh("__m")
		decl = A.DeclareStmt(loc, result, A.Literal(loc, None, "null"))
		t = self.checked.types.get(self.lowered.key(m))
		if t is not None:
			self.lowered.synthetic_types[decl.node_id] = nullable(t)
		stmts: List[A.Stmt] = list(subj_pfx)
		subject_name: Optional[str] = None
		if subject is not None:
			subject_name = self._fresh("__s")
			stmts.append(A.ResultTemp(subject.loc, subject_name, subject))
		stmts.append(decl)

		def chain(i: int) -> List[A.Stmt]:
			if i == len(arms):
				return []
			arm, pat_pfx, pattern, val_pfx, value = arms[i]
			assign = val_pfx + [A.MutationStmt(arm.loc, result, "=", value)]
			if arm.is_wildcard:
				return assign
			if subject_name is not None:
				cond: A.Expr = A.Binary(arm.loc, "==", A.Name(arm.loc, subject_name), pattern)
			else:
				cond = pattern
			rest = chain(i + 1)
			branch = A.IfStmt(arm.loc, cond, A.Block(arm.loc, tuple(assign)), A.Block(arm.loc, tuple(rest)) if rest else None)
			return pat_pfx + [branch]

		stmts.extend(chain(0))
		return stmts, A.Name(loc, result)

	def _rewrite_markup(self, el: A.MarkupElement) -> _Rewrite:
		attr_values = [a.value for a in el.attrs if a.value is not None]
		child_exprs = [c for c in el.children if not isinstance(c, A.MarkupText)]
		prefix, rewritten = self._rewrite_all([*attr_values, *child_exprs])
		it = iter(rewritten)
		attrs = tuple(
			a if a.value is None else self._rebuild(a, value=next(it))  # type: ignore[arg-type]
			for a in el.attrs
		)
		children = tuple(c if isinstance(c, A.MarkupText) else next(it) for c in el.children)
		return prefix, self._rebuild(el, attrs=attrs, children=children)


def _ends_with_return(stmts: Sequence[A.Stmt]) -> bool:
	return bool(stmts) and isinstance(stmts[-1], A.ReturnStmt)


def propagate_module(checked: CheckedModule) -> LoweredModule:
	return PropagationRewriter(checked).rewrite_module()


__all__ = ["LoweredModule", "PropagationRewriter", "propagate_module"]
