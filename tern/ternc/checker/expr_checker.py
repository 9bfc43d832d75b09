# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Expression typing.

`ExpressionChecker` is mixed into `ModuleChecker`; it assigns a `Type` to every
expression node and records call targets, member kinds and hidden-result call
sites in the module's side tables. Ill-typed subexpressions get `Unknown` so
checking continues past the first error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Sequence

from ..core.diagnostics import Diagnostic, DiagnosticKind
from ..core.types_core import (
	BOOL,
	DYNAMIC,
	ERROR,
	FALSY_CAPABLE,
	FLOAT,
	INT,
	NULL,
	STR,
	UNKNOWN,
	VOID,
	Collection,
	Function,
	Named,
	Nullable,
	Option,
	Record,
	Result,
	TupleType,
	Type,
	Unknown,
	children_of,
	comparable,
	is_assignable,
	is_nullable,
	is_numeric,
	lub,
	nullable,
	strip_null,
	union,
)
from ..parser import ast as A
from .decorations import CallKind, CallTarget, CheckedModule, MemberKind, ResultCall, ResultMode
from .stdlib import ELEMENT, method_signature
from .symbols import Scope, Symbol, SymbolKind
from .type_resolver import TypeResolver, is_valid_error_type

if TYPE_CHECKING:
	from . import Checker


@dataclass
class FnContext:
	"""Per-function (or lambda, or module top level) checking state."""

	name: str
	declared_ret: Optional[Type]
	result: Optional[Result] = None
	returns: List[Type] = field(default_factory=list)
	loop_depth: int = 0
	is_module: bool = False


_ARITH = {"+", "-", "*", "/", "%"}
_ORDER = {"<", ">", "<=", ">="}


class ExpressionChecker:
	checked: CheckedModule
	resolver: TypeResolver
	program: "Checker"

	# Diagnostics -----------------------------------------------------------

	def error(self, message: str, node: A.Node, *, kind: DiagnosticKind = DiagnosticKind.TYPE, code: str = "E-TYPE") -> Type:
		self.checked.diagnostics.append(Diagnostic(message, kind=kind, code=code, phase="typecheck", span=node.loc))
		return UNKNOWN

	def warn(self, message: str, node: A.Node, *, code: str) -> None:
		self.checked.diagnostics.append(
			Diagnostic(message, kind=DiagnosticKind.TYPE, code=code, phase="typecheck", severity="warning", span=node.loc)
		)

	def expect_assignable(self, src: Type, dst: Type, node: A.Node, what: str = "value") -> None:
		if not is_assignable(src, dst):
			self.error(f"type mismatch for {what}: expected {dst.render()}, found {src.render()}", node)

	def _record(self, node: A.Node, t: Type) -> Type:
		self.checked.types[node.node_id] = t
		return t

	def _dynamic_misuse(self, node: A.Node) -> Type:
		return self.error("value of type 'unknown' must be validated before use (call .validate(T))", node)

	# Entry point -------------------------------------------------------------

	def expr(self, e: A.Expr, scope: Scope, ctx: FnContext, expected: Optional[Type] = None) -> Type:
		t = self._expr(e, scope, ctx, expected)
		return self._record(e, t)

	def _expr(self, e: A.Expr, scope: Scope, ctx: FnContext, expected: Optional[Type]) -> Type:
		if isinstance(e, A.Literal):
			return {"int": INT, "float": FLOAT, "str": STR, "bool": BOOL, "null": NULL}[e.kind]
		if isinstance(e, A.Name):
			return self._check_name(e, scope)
		if isinstance(e, A.InterpolatedString):
			for part in e.parts:
				if isinstance(part, A.Expr):
					pt = self.expr(part, scope, ctx)
					if pt == VOID:
						self.error("cannot interpolate a void expression", part)
			return STR
		if isinstance(e, A.Binary):
			return self._check_binary(e, scope, ctx, expected)
		if isinstance(e, A.Unary):
			return self._check_unary(e, scope, ctx)
		if isinstance(e, A.Call):
			return self._check_call(e, scope, ctx, expected)
		if isinstance(e, A.Member):
			return self._check_member(e, scope, ctx)
		if isinstance(e, A.Index):
			return self._check_index(e, scope, ctx)
		if isinstance(e, A.MutAccess):
			self.expr(e.target, scope, ctx)
			return self.error(
				"'.mut' is only valid as an assignment target ('x.mut = value')",
				e,
				kind=DiagnosticKind.MUTABILITY,
				code="E-MUT",
			)
		if isinstance(e, A.ListLiteral):
			return self._check_list(e, scope, ctx, expected)
		if isinstance(e, A.TupleLiteral):
			elems = None
			if isinstance(expected, TupleType) and len(expected.elems) == len(e.items):
				elems = expected.elems
			return TupleType(
				tuple(self.expr(item, scope, ctx, elems[i] if elems else None) for i, item in enumerate(e.items))
			)
		if isinstance(e, A.ObjectLiteral):
			return self._check_object(e, scope, ctx, expected)
		if isinstance(e, A.Lambda):
			return self.check_lambda(e, scope, expected)
		if isinstance(e, A.MatchExpr):
			return self._check_match(e, scope, ctx, expected)
		if isinstance(e, A.MarkupElement):
			return self._check_markup(e, scope, ctx)
		return self.error(f"unsupported expression {type(e).__name__}", e)

	# Names -------------------------------------------------------------------

	def _check_name(self, e: A.Name, scope: Scope) -> Type:
		if e.is_wildcard:
			return self.error("'_' is only valid as a match pattern", e)
		if e.ident == "none":
			sym = scope.lookup("none")
			if sym is not None and sym.kind is SymbolKind.BUILTIN:
				self.checked.name_symbols[e.node_id] = sym
				return NULL
		sym = scope.lookup(e.ident)
		if sym is None:
			return self.error(f"undefined name '{e.ident}'", e, code="E-UNDEFINED")
		self.checked.name_symbols[e.node_id] = sym
		target = sym.target
		if target.kind in (SymbolKind.TYPE, SymbolKind.ENUM):
			return self.error(f"'{e.ident}' is a type, not a value", e)
		if target.kind is SymbolKind.BUILTIN:
			return self.error(f"builtin '{e.ident}' must be called", e)
		if target.kind is SymbolKind.IMPORT:
			# Unresolved import; already reported.
			return UNKNOWN
		narrowed = _narrowed_type(scope, e.ident)
		if narrowed is not None:
			return narrowed
		return self.program.symbol_type(sym)

	# Operators ---------------------------------------------------------------

	def _check_unary(self, e: A.Unary, scope: Scope, ctx: FnContext) -> Type:
		t = self.expr(e.operand, scope, ctx)
		if isinstance(t, Unknown):
			return t
		if e.op == "!":
			if t != BOOL:
				return self.error(f"operator '!' expects bool, found {t.render()}", e)
			return BOOL
		if not is_numeric(t):
			if t == DYNAMIC:
				return self._dynamic_misuse(e)
			return self.error(f"unary '-' expects a number, found {t.render()}", e)
		return t

	def _check_binary(self, e: A.Binary, scope: Scope, ctx: FnContext, expected: Optional[Type]) -> Type:
		op = e.op
		if op in ("?:", "??"):
			return self._check_fallback(e, scope, ctx, expected)
		lt = self.expr(e.left, scope, ctx)
		if op in ("&&", "||"):
			rscope = scope
			if op == "&&":
				rscope = self.narrowing_scope(scope, e.left, positive=True)
			elif op == "||":
				rscope = self.narrowing_scope(scope, e.left, positive=False)
			rt = self.expr(e.right, rscope, ctx)
			for side, t in ((e.left, lt), (e.right, rt)):
				if not isinstance(t, Unknown) and t != BOOL:
					self.error(f"operator '{op}' expects bool operands, found {t.render()}", side)
			return BOOL
		rt = self.expr(e.right, scope, ctx)
		if op in ("==", "!="):
			self._check_equality(e, lt, rt)
			return BOOL
		if isinstance(lt, Unknown) or isinstance(rt, Unknown):
			return BOOL if op in _ORDER else UNKNOWN
		if DYNAMIC in (lt, rt):
			return self._dynamic_misuse(e)
		if op in _ORDER:
			if (is_numeric(lt) and is_numeric(rt)) or (lt == STR and rt == STR):
				return BOOL
			return self.error(f"cannot compare {lt.render()} and {rt.render()} with '{op}'", e)
		if op == "+" and lt == STR and rt == STR:
			return STR
		if op in _ARITH and is_numeric(lt) and is_numeric(rt):
			if op == "%" and (lt != INT or rt != INT):
				return self.error("operator '%' expects int operands", e)
			return FLOAT if FLOAT in (lt, rt) else INT
		if op == "+" and STR in (lt, rt):
			return self.error(
				f"cannot add {lt.render()} and {rt.render()}; use string interpolation (\"{{x}}\") or str(x)",
				e,
			)
		return self.error(f"operator '{op}' is not defined for {lt.render()} and {rt.render()}", e)

	def _check_equality(self, e: A.Binary, lt: Type, rt: Type) -> None:
		for enum_t, other in ((lt, rt), (rt, lt)):
			base = strip_null(enum_t)
			if isinstance(base, Named) and base.is_enum and base.info.backing is not None:
				if strip_null(other) == base.info.backing:
					self.error(
						f"cannot compare enum '{base.name}' with its backing value; "
						f"use {base.name}.from(...) or '.value'",
						e,
					)
					return
		if not comparable(lt, rt):
			# Strict equality between different types is always false.
			self.checked.const_equality[e.node_id] = e.op == "!="

	def _check_fallback(self, e: A.Binary, scope: Scope, ctx: FnContext, expected: Optional[Type]) -> Type:
		lt = self.expr(e.left, scope, ctx)
		rt = self.expr(e.right, scope, ctx, expected)
		if isinstance(lt, Unknown):
			return rt
		if e.op == "??":
			if not (is_nullable(lt) or isinstance(lt, Option)):
				self.warn(f"left side of '??' is never null ({lt.render()}); the fallback is unused", e.left, code="W-COALESCE-NON-NULL")
		else:
			if not (is_nullable(lt) or strip_null(lt) in FALSY_CAPABLE):
				self.error(f"left side of '?:' must be nullable or a falsy-capable primitive, found {lt.render()}", e.left)
		left = strip_null(lt) if lt != DYNAMIC else DYNAMIC
		if left == NULL:
			return rt
		return lub([left, rt]) if is_numeric(left) and is_numeric(strip_null(rt)) else union(left, rt)

	# Calls -------------------------------------------------------------------

	def _target(self, call: A.Call, target: CallTarget) -> None:
		self.checked.call_targets[call.node_id] = target

	def _result_call(self, call: A.Call, ok: Type, err: Type, *, hidden: bool, callee: str, ctx: FnContext) -> Type:
		if self._destructure_call_id == call.node_id:
			mode = ResultMode.DESTRUCTURE
		elif ctx.result is not None:
			mode = ResultMode.PROPAGATE
		else:
			mode = ResultMode.UNWRAP
			self.warn(
				f"unhandled error from '{callee}': destructure it ('value, err = ...') or call it from a "
				f"function returning result; it throws at runtime on failure",
				call,
				code="W-UNHANDLED-RESULT",
			)
		self.checked.result_calls[call.node_id] = ResultCall(ok, err, hidden, mode, callee)
		return ok

	def _check_args(
		self,
		call: A.Call,
		params: Sequence[Type],
		scope: Scope,
		ctx: FnContext,
		callee: str,
	) -> List[Type]:
		if len(call.args) != len(params):
			self.error(
				f"'{callee}' expects {len(params)} argument{'s' if len(params) != 1 else ''}, got {len(call.args)}",
				call,
				code="E-ARITY",
			)
		out = []
		for i, arg in enumerate(call.args):
			expected = params[i] if i < len(params) else None
			t = self.expr(arg, scope, ctx, expected)
			if expected is not None:
				self.expect_assignable(t, expected, arg, f"argument {i + 1} of '{callee}'")
			out.append(t)
		return out

	def _check_call(self, call: A.Call, scope: Scope, ctx: FnContext, expected: Optional[Type]) -> Type:
		callee = call.callee
		if isinstance(callee, A.Member) and not callee.optional:
			return self._check_method_call(call, callee, scope, ctx, expected)
		if isinstance(callee, A.Name):
			sym = scope.lookup(callee.ident)
			if sym is None:
				for arg in call.args:
					self.expr(arg, scope, ctx)
				return self.error(f"undefined function '{callee.ident}'", callee, code="E-UNDEFINED")
			self.checked.name_symbols[callee.node_id] = sym
			target = sym.target
			if target.kind is SymbolKind.BUILTIN:
				return self._check_builtin(call, callee.ident, scope, ctx, expected)
			if target.kind in (SymbolKind.TYPE, SymbolKind.ENUM):
				return self.error(f"'{callee.ident}' is a type and cannot be called", callee)
			ftype = self.program.symbol_type(sym)
			self._record(callee, ftype)
			if target.kind is SymbolKind.FUNCTION and self.program.is_module_level(target):
				self._target(call, CallTarget(CallKind.FUNCTION, name=target.name, module=target.module))
			else:
				self._target(call, CallTarget(CallKind.VALUE, name=callee.ident))
			name = callee.ident
		else:
			ftype = self.expr(callee, scope, ctx)
			self._target(call, CallTarget(CallKind.VALUE))
			name = "<expression>"
		return self._apply_function(call, ftype, name, scope, ctx)

	def _apply_function(self, call: A.Call, ftype: Type, name: str, scope: Scope, ctx: FnContext) -> Type:
		if isinstance(ftype, Unknown):
			for arg in call.args:
				self.expr(arg, scope, ctx)
			return UNKNOWN
		if not isinstance(ftype, Function):
			for arg in call.args:
				self.expr(arg, scope, ctx)
			if ftype == DYNAMIC:
				return self._dynamic_misuse(call)
			return self.error(f"'{name}' is not callable (type {ftype.render()})", call)
		self._check_args(call, ftype.params, scope, ctx, name)
		ret = ftype.ret
		if isinstance(ret, Result):
			return self._result_call(call, ret.ok, ret.err, hidden=False, callee=name, ctx=ctx)
		return ret

	def _check_builtin(self, call: A.Call, name: str, scope: Scope, ctx: FnContext, expected: Optional[Type]) -> Type:
		self._target(call, CallTarget(CallKind.BUILTIN, name=name))
		args = call.args
		if name == "print":
			for arg in args:
				t = self.expr(arg, scope, ctx)
				if t == VOID:
					self.error("cannot print a void expression", arg)
			return VOID
		if name == "ok":
			exp_ok = expected.ok if isinstance(expected, Result) else (ctx.result.ok if ctx.result else None)
			exp_err = expected.err if isinstance(expected, Result) else (ctx.result.err if ctx.result else UNKNOWN)
			if len(args) > 1:
				self.error("'ok' takes at most one argument", call, code="E-ARITY")
			ok_t = self.expr(args[0], scope, ctx, exp_ok) if args else VOID
			if exp_ok is not None:
				self.expect_assignable(ok_t if args else VOID, exp_ok, call, "ok value")
			for extra in args[1:]:
				self.expr(extra, scope, ctx)
			return Result(exp_ok if exp_ok is not None else ok_t, exp_err)
		if name == "err":
			exp_ok = expected.ok if isinstance(expected, Result) else (ctx.result.ok if ctx.result else UNKNOWN)
			exp_err = expected.err if isinstance(expected, Result) else (ctx.result.err if ctx.result else None)
			if len(args) != 1:
				self.error("'err' takes exactly one argument", call, code="E-ARITY")
				for arg in args:
					self.expr(arg, scope, ctx)
				return Result(exp_ok, exp_err or UNKNOWN)
			err_t = self.expr(args[0], scope, ctx, exp_err)
			if exp_err is not None:
				self.expect_assignable(err_t, exp_err, args[0], "error value")
			elif not is_valid_error_type(err_t):
				self.error(f"'{err_t.render()}' is not an error type", args[0])
			return Result(exp_ok, exp_err if exp_err is not None else err_t)
		if name == "some":
			if len(args) != 1:
				self.error("'some' takes exactly one argument", call, code="E-ARITY")
				return UNKNOWN
			inner = expected.inner if isinstance(expected, (Option, Nullable)) else None
			return Option(self.expr(args[0], scope, ctx, inner))
		# The remaining builtins take exactly one argument.
		if len(args) != 1:
			for arg in args:
				self.expr(arg, scope, ctx)
			return self.error(f"'{name}' takes exactly one argument", call, code="E-ARITY")
		arg_t = self.expr(args[0], scope, ctx)
		if isinstance(arg_t, Unknown):
			return {"len": INT, "str": STR, "int": INT, "float": FLOAT, "parse": DYNAMIC, "error": ERROR}[name]
		if name == "len":
			if arg_t == STR or (isinstance(arg_t, Collection)):
				return INT
			return self.error(f"len() expects a string or collection, found {arg_t.render()}", args[0])
		if name == "str":
			if arg_t == VOID:
				self.error("cannot convert a void expression to str", args[0])
			return STR
		if name in ("int", "float"):
			target_t = INT if name == "int" else FLOAT
			if arg_t in (STR, DYNAMIC):
				return self._result_call(call, target_t, ERROR, hidden=True, callee=name, ctx=ctx)
			if is_numeric(arg_t):
				return target_t
			return self.error(f"{name}() expects a number or a string, found {arg_t.render()}", args[0])
		if name == "parse":
			if arg_t != STR:
				self.error(f"parse() expects str, found {arg_t.render()}", args[0])
			return DYNAMIC
		if name == "error":
			if arg_t != STR:
				self.error(f"error() expects a message of type str, found {arg_t.render()}", args[0])
			return ERROR
		return self.error(f"unknown builtin '{name}'", call)

	def _check_method_call(
		self,
		call: A.Call,
		callee: A.Member,
		scope: Scope,
		ctx: FnContext,
		expected: Optional[Type],
	) -> Type:
		# Enum helpers: `Role.from(v)`, `Role.values()`.
		if isinstance(callee.obj, A.Name):
			sym = scope.lookup(callee.obj.ident)
			if sym is not None and sym.target.kind is SymbolKind.ENUM:
				self.checked.name_symbols[callee.obj.node_id] = sym
				enum_t = self.program.symbol_type(sym)
				return self._check_enum_helper(call, callee, enum_t, scope, ctx)
			if sym is not None and sym.target.kind is SymbolKind.TYPE:
				return self.error(f"type '{callee.obj.ident}' has no method '{callee.name}'", callee)
		if callee.name == "validate":
			return self._check_validate(call, callee, scope, ctx)
		recv = self.expr(callee.obj, scope, ctx)
		if isinstance(recv, Unknown):
			for arg in call.args:
				self.expr(arg, scope, ctx)
			return UNKNOWN
		if recv == DYNAMIC:
			for arg in call.args:
				self.expr(arg, scope, ctx)
			return self._dynamic_misuse(callee)
		if isinstance(recv, (Nullable, Option)):
			self.error(f"receiver may be null ({recv.render()}); check it first or use '?.'", callee.obj)
			recv = strip_null(recv)
		sig = method_signature(recv, callee.name)
		if sig is not None:
			self._target(call, CallTarget(CallKind.METHOD, name=callee.name, receiver=sig.receiver))
			arg_types = self._check_args(call, sig.params, scope, ctx, f"{sig.receiver}.{callee.name}")
			if sig.returns_mapped:
				mapped = arg_types[0] if arg_types else UNKNOWN
				elem = mapped.ret if isinstance(mapped, Function) else UNKNOWN
				if elem == VOID:
					self.error("map() callback must return a value", call)
				return Collection("list", (elem,))
			return sig.ret
		# Calling a function-typed record field.
		field_t = _field_type(recv, callee.name)
		if isinstance(field_t, Function):
			self.checked.member_kinds[callee.node_id] = MemberKind.FIELD
			self._record(callee, field_t)
			self._target(call, CallTarget(CallKind.VALUE))
			return self._apply_function(call, field_t, callee.name, scope, ctx)
		for arg in call.args:
			self.expr(arg, scope, ctx)
		return self.error(f"type {recv.render()} has no method '{callee.name}'", callee)

	def _check_enum_helper(self, call: A.Call, callee: A.Member, enum_t: Type, scope: Scope, ctx: FnContext) -> Type:
		if not isinstance(enum_t, Named):
			return UNKNOWN
		if callee.name == "from":
			self._target(call, CallTarget(CallKind.ENUM_FROM, name=enum_t.name, type_arg=enum_t))
			backing = enum_t.info.backing or STR
			self._check_args(call, (backing,), scope, ctx, f"{enum_t.name}.from")
			return Option(enum_t)
		if callee.name == "values":
			self._target(call, CallTarget(CallKind.ENUM_VALUES, name=enum_t.name, type_arg=enum_t))
			self._check_args(call, (), scope, ctx, f"{enum_t.name}.values")
			return Collection("list", (enum_t,))
		for arg in call.args:
			self.expr(arg, scope, ctx)
		return self.error(f"enum '{enum_t.name}' has no method '{callee.name}' (available: from, values)", callee)

	def _check_validate(self, call: A.Call, callee: A.Member, scope: Scope, ctx: FnContext) -> Type:
		recv = self.expr(callee.obj, scope, ctx)
		if not isinstance(recv, Unknown) and recv != DYNAMIC:
			self.error(f"validate() is only available on values of type 'unknown', found {recv.render()}", callee)
		if len(call.args) != 1 or not isinstance(call.args[0], A.Name):
			return self.error("validate() takes one type argument, e.g. value.validate(User)", call, code="E-ARITY")
		type_name = call.args[0]
		sym = scope.lookup(type_name.ident)
		if sym is None or sym.target.kind is not SymbolKind.TYPE:
			return self.error(f"validate() expects a record type name, found '{type_name.ident}'", type_name)
		t = self.program.symbol_type(sym)
		if not (isinstance(t, Named) and t.is_record):
			return self.error(f"validate() expects a record type, '{type_name.ident}' is {t.render()}", type_name)
		bad = _unvalidatable(t)
		if bad is not None:
			return self.error(f"type '{t.name}' cannot be validated: field type {bad.render()} is not checkable", type_name)
		self._target(call, CallTarget(CallKind.VALIDATE, name=t.name, type_arg=t))
		return self._result_call(call, t, ERROR, hidden=True, callee=f"validate({t.name})", ctx=ctx)

	# Members -----------------------------------------------------------------

	def _check_member(self, e: A.Member, scope: Scope, ctx: FnContext) -> Type:
		if isinstance(e.obj, A.Name):
			sym = scope.lookup(e.obj.ident)
			if sym is not None and sym.target.kind is SymbolKind.ENUM:
				self.checked.name_symbols[e.obj.node_id] = sym
				enum_t = self.program.symbol_type(sym)
				if not isinstance(enum_t, Named):
					return UNKNOWN
				self._record(e.obj, enum_t)
				if e.name not in {v for v, _ in enum_t.info.variants}:
					return self.error(f"enum '{enum_t.name}' has no variant '{e.name}'", e)
				self.checked.member_kinds[e.node_id] = MemberKind.ENUM_VARIANT
				return enum_t
			if sym is not None and sym.target.kind is SymbolKind.TYPE:
				return self.error(f"type '{e.obj.ident}' has no members", e)
		obj_t = self.expr(e.obj, scope, ctx)
		if isinstance(obj_t, Unknown):
			return UNKNOWN
		if obj_t == DYNAMIC:
			return self._dynamic_misuse(e)
		optional = False
		if isinstance(obj_t, (Nullable, Option)) or obj_t == NULL:
			if not e.optional:
				self.error(f"value may be null ({obj_t.render()}); use '?.' or check for null first", e.obj)
			optional = e.optional
			obj_t = strip_null(obj_t)
		if isinstance(obj_t, Named) and obj_t.is_enum:
			if e.name == "value":
				self.checked.member_kinds[e.node_id] = MemberKind.ENUM_VALUE
				t: Type = obj_t.info.backing or STR
			elif e.name == "name":
				self.checked.member_kinds[e.node_id] = MemberKind.ENUM_NAME
				t = STR
			else:
				return self.error(f"enum value has no member '{e.name}' (available: value, name)", e)
			return nullable(t) if optional else t
		field_t = _field_type(obj_t, e.name)
		if field_t is not None:
			self.checked.member_kinds[e.node_id] = MemberKind.FIELD
			return nullable(field_t) if optional else field_t
		if method_signature(obj_t, e.name) is not None:
			return self.error(f"'{e.name}' is a method; call it as .{e.name}(...)", e)
		return self.error(f"type {obj_t.render()} has no field '{e.name}'", e)

	def _check_index(self, e: A.Index, scope: Scope, ctx: FnContext) -> Type:
		obj_t = self.expr(e.obj, scope, ctx)
		if isinstance(obj_t, Collection) and obj_t.kind == "map":
			key_t = self.expr(e.index, scope, ctx, obj_t.elems[0])
			self.expect_assignable(key_t, obj_t.elems[0], e.index, "map key")
			return nullable(obj_t.elems[1])
		idx_t = self.expr(e.index, scope, ctx)
		if isinstance(obj_t, Unknown):
			return UNKNOWN
		if obj_t == DYNAMIC:
			return self._dynamic_misuse(e)
		if not isinstance(idx_t, Unknown) and idx_t != INT:
			return self.error(f"index must be int, found {idx_t.render()}", e.index)
		if isinstance(obj_t, Collection) and obj_t.kind == "list":
			return obj_t.elem
		if obj_t == STR:
			return STR
		if isinstance(obj_t, TupleType):
			if isinstance(e.index, A.Literal) and e.index.kind == "int":
				pos = int(e.index.value)  # type: ignore[arg-type]
				if 0 <= pos < len(obj_t.elems):
					self.checked.member_kinds[e.node_id] = MemberKind.TUPLE_ELEM
					return obj_t.elems[pos]
				return self.error(f"tuple index {pos} out of range for {obj_t.render()}", e.index)
			return self.error("tuple index must be an integer literal", e.index)
		return self.error(f"type {obj_t.render()} cannot be indexed", e)

	# Literals ----------------------------------------------------------------

	def _check_list(self, e: A.ListLiteral, scope: Scope, ctx: FnContext, expected: Optional[Type]) -> Type:
		target = expected if isinstance(expected, Collection) and expected.kind in ("list", "set") else None
		if isinstance(expected, (Nullable, Option)) and isinstance(expected.inner, Collection):
			target = expected.inner if expected.inner.kind in ("list", "set") else None
		if not e.items:
			if target is not None:
				return target
			return self.error("empty list literal needs a type annotation (e.g. 'xs: list<int> = []')", e)
		elem_exp = target.elem if target is not None else None
		items = [self.expr(item, scope, ctx, elem_exp) for item in e.items]
		if target is not None:
			for item, t in zip(e.items, items):
				self.expect_assignable(t, target.elem, item, f"{target.kind} element")
			return target
		elem = lub(items)
		if elem == VOID:
			return self.error("list elements cannot be void", e)
		return Collection("list", (elem,))

	def _check_object(self, e: A.ObjectLiteral, scope: Scope, ctx: FnContext, expected: Optional[Type]) -> Type:
		exp = strip_null(expected) if expected is not None else None
		if not e.entries:
			if isinstance(exp, Collection) and exp.kind == "map":
				return exp
			if isinstance(exp, Record) or (isinstance(exp, Named) and exp.is_record):
				return exp
			return self.error("empty object literal needs a type annotation", e)
		quoted = {entry.quoted for entry in e.entries}
		if len(quoted) > 1:
			return self.error("object literal mixes record fields and quoted map keys", e)
		seen = set()
		for entry in e.entries:
			if entry.key in seen:
				self.error(f"duplicate key '{entry.key}' in object literal", entry)
			seen.add(entry.key)
		if e.is_map:
			value_exp = exp.elems[1] if isinstance(exp, Collection) and exp.kind == "map" else None
			values = [self.expr(entry.value, scope, ctx, value_exp) for entry in e.entries]
			if value_exp is not None:
				for entry, t in zip(e.entries, values):
					self.expect_assignable(t, value_exp, entry.value, "map value")
				return exp  # type: ignore[return-value]
			return Collection("map", (STR, lub(values)))
		body = exp.info.body if isinstance(exp, Named) and exp.is_record else exp
		fields = []
		for entry in e.entries:
			field_exp = body.field_type(entry.key) if isinstance(body, Record) else None
			t = self.expr(entry.value, scope, ctx, field_exp)
			if t == VOID:
				self.error(f"field '{entry.key}' cannot hold a void value", entry.value)
			fields.append((entry.key, t))
		return Record(tuple(fields))

	# Lambdas -----------------------------------------------------------------

	def check_lambda(self, lam: A.Lambda, scope: Scope, expected: Optional[Type]) -> Type:
		exp_fn = expected if isinstance(expected, Function) and len(expected.params) == len(lam.params) else None
		fn_scope = scope.child("function")
		params = []
		for i, p in enumerate(lam.params):
			if p.type_expr is not None:
				pt = self.resolver.resolve(p.type_expr)
			elif exp_fn is not None:
				pt = exp_fn.params[i]
			else:
				pt = self.error(f"cannot infer the type of parameter '{p.name}'; annotate it", p)
			params.append(pt)
			self.define_local(fn_scope, p.name, SymbolKind.PARAM, pt, p, (p.node_id, p.name))
		declared = self.resolver.resolve(lam.ret_type) if lam.ret_type is not None else None
		result = declared if isinstance(declared, Result) else None
		lctx = FnContext("<lambda>", declared, result)
		if result is not None:
			self.checked.fn_results[lam.node_id] = result
		if isinstance(lam.body, A.Block):
			self.check_block_in(lam.body, fn_scope, lctx)
			ret = declared if declared is not None else (lub(lctx.returns) if lctx.returns else VOID)
		else:
			body_exp = declared if declared is not None else (exp_fn.ret if exp_fn is not None and exp_fn.ret != VOID else None)
			ret_t = self.check_return_value(lam.body, fn_scope, lctx, body_exp)
			ret = declared if declared is not None else ret_t
		fn_t = Function(tuple(params), ret)
		self.checked.fn_types[lam.node_id] = fn_t
		return fn_t

	# Match -------------------------------------------------------------------

	def _check_match(self, m: A.MatchExpr, scope: Scope, ctx: FnContext, expected: Optional[Type]) -> Type:
		subject_t = self.expr(m.subject, scope, ctx) if m.subject is not None else None
		if subject_t == DYNAMIC:
			self._dynamic_misuse(m.subject)  # type: ignore[arg-type]
		has_wildcard = False
		covered: set = set()
		values: List[Type] = []
		for arm in m.arms:
			if has_wildcard:
				self.warn("unreachable match arm after '_'", arm, code="W-MATCH-UNREACHABLE")
			if arm.is_wildcard:
				self._record(arm.pattern, UNKNOWN)
				has_wildcard = True
			elif subject_t is None:
				guard_t = self.expr(arm.pattern, scope, ctx)
				if not isinstance(guard_t, Unknown) and guard_t != BOOL:
					self.error(f"match guard must be bool, found {guard_t.render()}", arm.pattern)
			else:
				pat_t = self.expr(arm.pattern, scope, ctx, subject_t)
				self._check_pattern(arm, subject_t, pat_t, covered)
			values.append(self.expr(arm.value, scope, ctx, expected))
		exhaustive = has_wildcard or _covers(subject_t, covered)
		self.checked.match_exhaustive[m.node_id] = exhaustive
		if not exhaustive:
			self.warn("non-exhaustive match: add a '_' arm", m, code="W-MATCH-EXHAUSTIVE")
		non_void = [v for v in values if v != VOID]
		if not non_void:
			return VOID if values else UNKNOWN
		if len(non_void) != len(values):
			self.error("match arms mix void and non-void values", m)
		return lub(non_void)

	def _check_pattern(self, arm: A.MatchArm, subject_t: Type, pat_t: Type, covered: set) -> None:
		base = strip_null(subject_t)
		if isinstance(base, Named) and base.is_enum and base.info.backing is not None:
			if strip_null(pat_t) == base.info.backing:
				self.error(
					f"cannot match enum '{base.name}' against its backing value; use {base.name}.{_variant_hint(base)}",
					arm.pattern,
				)
				return
		if not comparable(subject_t, pat_t):
			self.error(f"pattern of type {pat_t.render()} can never match a value of type {subject_t.render()}", arm.pattern)
			return
		pattern = arm.pattern
		if isinstance(pattern, A.Member) and self.checked.member_kinds.get(pattern.node_id) is MemberKind.ENUM_VARIANT:
			covered.add(pattern.name)
		elif isinstance(pattern, A.Literal) and pattern.kind in ("bool", "null"):
			covered.add(pattern.value)

	# Markup ------------------------------------------------------------------

	def _check_markup(self, el: A.MarkupElement, scope: Scope, ctx: FnContext) -> Type:
		if el.is_component:
			sym = scope.lookup(el.tag)
			if sym is None or not sym.is_value:
				self.error(f"unknown component '{el.tag}'", el, code="E-UNDEFINED")
			else:
				comp_t = self.program.symbol_type(sym)
				if not isinstance(comp_t, (Function, Unknown)):
					self.error(f"component '{el.tag}' must be a function", el)
		for attr in el.attrs:
			if attr.value is None:
				continue
			t = self.expr(attr.value, scope, ctx)
			if attr.event and not isinstance(t, (Function, Unknown)):
				self.error(f"handler for '@{attr.name}' must be a function, found {t.render()}", attr.value)
			elif not attr.event and t == VOID:
				self.error(f"attribute '{attr.name}' cannot take a void value", attr.value)
		for child in el.children:
			if isinstance(child, A.MarkupText):
				continue
			t = self.expr(child, scope, ctx)
			if t == VOID:
				self.error("markup child cannot be a void expression", child)
		return ELEMENT

	def narrowing_scope(self, scope: Scope, cond: A.Expr, *, positive: bool) -> Scope:
		"""Child scope where `x != null` (or, negated, `x == null`) narrows `x` to non-null."""
		child = scope.child()
		test = null_test(cond)
		if test is None or test[1] != positive:
			return child
		name = test[0]
		current = _narrowed_type(scope, name)
		if current is None:
			sym = scope.lookup(name)
			if sym is None or sym.target.kind not in (SymbolKind.VARIABLE, SymbolKind.PARAM):
				return child
			current = self.program.symbol_type(sym)
		child.narrowings[name] = strip_null(current)
		return child

	# Hooks provided by ModuleChecker -------------------------------------------

	_destructure_call_id: Optional[int] = None

	def define_local(self, scope: Scope, name: str, kind: SymbolKind, t: Type, node: A.Node, key) -> Symbol:
		raise NotImplementedError

	def check_block_in(self, block: A.Block, scope: Scope, ctx: FnContext) -> None:
		raise NotImplementedError

	def check_return_value(self, value: A.Expr, scope: Scope, ctx: FnContext, expected: Optional[Type]) -> Type:
		raise NotImplementedError


# Helpers ---------------------------------------------------------------------


def _field_type(t: Type, name: str) -> Optional[Type]:
	if isinstance(t, Named) and t.is_record and t.info.body is not None:
		return t.info.body.field_type(name)
	if isinstance(t, Record):
		return t.field_type(name)
	return None


def _covers(subject_t: Optional[Type], covered: set) -> bool:
	if subject_t is None:
		return False
	base = strip_null(subject_t)
	if isinstance(subject_t, (Nullable, Option)) and None not in covered:
		return False
	if isinstance(base, Named) and base.is_enum:
		return {v for v, _ in base.info.variants} <= covered
	if base == BOOL:
		return {True, False} <= covered
	return False


def _variant_hint(enum_t: Named) -> str:
	return enum_t.info.variants[0][0] if enum_t.info.variants else "<Variant>"


def _unvalidatable(t: Type, seen: Optional[set] = None) -> Optional[Type]:
	"""First field type in `t` that a runtime schema check cannot express."""
	seen = seen if seen is not None else set()
	if isinstance(t, Function):
		return t
	if isinstance(t, Named):
		if t.decl_id in seen:
			return None
		seen.add(t.decl_id)
		if t.info.kind == "resource":
			return t
		if t.info.body is not None:
			return _unvalidatable(t.info.body, seen)
		return None
	for child in children_of(t):
		bad = _unvalidatable(child, seen)
		if bad is not None:
			return bad
	return None


def _narrowed_type(scope: Scope, name: str) -> Optional[Type]:
	s: Optional[Scope] = scope
	while s is not None:
		if name in s.narrowings:
			return s.narrowings[name]
		if name in s.names:
			return None
		s = s.parent
	return None


def null_test(cond: A.Expr) -> Optional[tuple[str, bool]]:
	"""`x != null` -> ("x", True); `x == null` -> ("x", False); otherwise None."""
	if not isinstance(cond, A.Binary) or cond.op not in ("==", "!="):
		return None
	for a, b in ((cond.left, cond.right), (cond.right, cond.left)):
		if isinstance(a, A.Name) and isinstance(b, A.Literal) and b.kind == "null":
			return a.ident, cond.op == "!="
	return None


__all__ = ["ExpressionChecker", "FnContext", "null_test"]
