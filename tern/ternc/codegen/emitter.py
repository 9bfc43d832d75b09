# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Module emitter: one lowered, linked module -> TypeScript/JavaScript text.

Emission is a pure function of the linked module: declarations in source
order, temporaries named by the propagation pass, no timestamps. Everything
that needs a decision was decided earlier (types by the checker, result
wrapping by propagation, direct vs. stub calls and async-ness by the
linker); the emitter only spells it out.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..checker.decorations import CallKind, CallTarget, MemberKind
from ..checker.symbols import SymbolKind
from ..core.contexts import ExecutionContext
from ..core.types_core import (
	FLOAT,
	INT,
	STR,
	VOID,
	Collection,
	Function,
	Named,
	Type,
	Unknown,
	strip_null,
)
from ..linker.context_linker import LinkedModule, StubSpec
from ..parser import ast as A
from .naming import import_specifier, js_name, runtime_specifier
from .schema import js_literal, route_param_schemas, route_response_schema, schema_of
from .ts_types import TypeNamer

logger = logging.getLogger(__name__)

RUNTIME = "__tern"


@dataclass(frozen=True)
class EmitOptions:
	target: str = "ts"
	runtime_module: str = "tern_runtime"

	@property
	def typed(self) -> bool:
		return self.target == "ts"

	@property
	def extension(self) -> str:
		return "ts" if self.typed else "js"


class _Writer:
	def __init__(self, depth: int = 0) -> None:
		self.lines: List[str] = []
		self.depth = depth

	def line(self, text: str = "") -> None:
		self.lines.append("\t" * self.depth + text if text else "")

	def push(self) -> None:
		self.depth += 1

	def pop(self) -> None:
		self.depth -= 1


# Expressions whose emitted text binds tighter than any operator.
_PRIMARY = (
	A.Literal,
	A.Name,
	A.Call,
	A.Member,
	A.Index,
	A.ListLiteral,
	A.TupleLiteral,
	A.InterpolatedString,
	A.MatchExpr,
	A.MarkupElement,
	A.ResultValue,
	A.ResultError,
	A.WrapOk,
	A.WrapErr,
	A.WidenError,
	A.Unwrap,
)


def _is_null(e: A.Expr) -> bool:
	return (isinstance(e, A.Literal) and e.kind == "null") or (isinstance(e, A.Name) and e.ident == "none")


def _template_text(text: str) -> str:
	return text.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")


class ModuleEmitter:
	def __init__(self, linked: LinkedModule, program: Dict[str, LinkedModule], options: EmitOptions) -> None:
		self.linked = linked
		self.lowered = linked.lowered
		self.checked = linked.lowered.checked
		self.program = program
		self.options = options
		self.out = _Writer()
		self.types = TypeNamer(self._type_names())
		self._matches = 0
		self._stub_names = linked.stub_names()

	# Helpers -------------------------------------------------------------

	def _key(self, node: A.Node) -> int:
		return self.lowered.key(node)

	def _type(self, node: A.Node) -> Optional[Type]:
		return self.lowered.type_of(node)

	def _ts(self, t: Optional[Type]) -> str:
		return self.types.render(t) if t is not None else "any"

	def _annotation(self, t: Optional[Type]) -> str:
		if not self.options.typed or t is None or isinstance(t, Unknown):
			return ""
		return f": {self._ts(t)}"

	def _mutated(self, node: A.Node, name: str) -> bool:
		return self.checked.is_mutated(self._key(node), name)

	def _source_context(self, module_id: Optional[str]) -> Optional[ExecutionContext]:
		lm = self.program.get(module_id or "")
		return lm.context if lm is not None else None

	def _type_names(self) -> Dict[str, str]:
		names = {named.decl_id: name for name, named in self.checked.named_types.items()}
		info = self.checked.info
		for binding in info.imports:
			local = info.symbols.get(binding.spec.local_name)
			if local is None or local.origin is None or (binding.source_module or "").startswith("std/"):
				continue
			target = local.target
			if target.kind in (SymbolKind.TYPE, SymbolKind.ENUM) and isinstance(target.type, Named):
				names[target.type.decl_id] = binding.spec.local_name
		return names

	# Module ----------------------------------------------------------------

	def emit(self) -> str:
		w = self.out
		context = self.checked.context.value if self.checked.context is not None else "unknown"
		w.line(f"// Generated by ternc from {self.checked.path} ({context}). Do not edit.")
		w.line(f'import * as {RUNTIME} from "{runtime_specifier(self.checked.module_id, self.options.runtime_module)}";')
		enum_copies = self._emit_imports()
		for local, named in enum_copies:
			self._emit_enum(local, named, exported=False)
		for stub in self.linked.stubs:
			w.line()
			self._emit_stub(stub)
		for item in self.lowered.ast.items:
			self._emit_item(item)
		logger.debug("emitted %s (%d lines)", self.checked.module_id, len(w.lines))
		return "\n".join(w.lines) + "\n"

	def _emit_imports(self) -> List[Tuple[str, Named]]:
		"""
		Emit import statements grouped by source module in source order.

		Client modules never import server-only files: exposed functions
		become stubs and enums are re-declared locally (the runtime registry
		keeps their variants identical); record types are type-only imports.
		"""
		info = self.checked.info
		values: Dict[str, List[str]] = {}
		type_only: Dict[str, List[str]] = {}
		enum_copies: List[Tuple[str, Named]] = []
		client = self.checked.context is ExecutionContext.CLIENT_ONLY
		for binding in info.imports:
			spec = binding.spec
			local = info.symbols.get(spec.local_name)
			if local is None or local.decl is not spec or local.origin is None:
				continue
			if spec.local_name in self._stub_names:
				continue
			target = local.target
			source = binding.source_module or ""
			from_server = self._source_context(source) is ExecutionContext.SERVER_ONLY
			if target.kind is SymbolKind.ENUM and client and from_server and isinstance(target.type, Named):
				enum_copies.append((spec.local_name, target.type))
				continue
			if target.kind is SymbolKind.TYPE:
				if not self.options.typed or source.startswith("std/"):
					continue
				text = spec.name if spec.alias is None else f"{spec.name} as {spec.alias}"
				type_only.setdefault(source, []).append(text)
				continue
			name = js_name(spec.name)
			text = name if spec.local_name == spec.name else f"{name} as {js_name(spec.local_name)}"
			values.setdefault(source, []).append(text)
		for source in _ordered(values, type_only):
			spec = import_specifier(self.checked.module_id, source)
			if source in values:
				self.out.line(f'import {{ {", ".join(values[source])} }} from "{spec}";')
			if source in type_only:
				self.out.line(f'import type {{ {", ".join(type_only[source])} }} from "{spec}";')
		return enum_copies

	def _emit_stub(self, stub: StubSpec) -> None:
		route = stub.route
		names = [js_name(n) for n, _ in route.params]
		if self.options.typed:
			params = ", ".join(f"{n}: {self._ts(t)}" for n, (_, t) in zip(names, route.params))
			ret = f": Promise<{self._ts(route.response)}>"
		else:
			params, ret = ", ".join(names), ""
		self.out.line(f"// network stub for {route.id}")
		self.out.line(f"async function {js_name(stub.local_name)}({params}){ret} {{")
		self.out.push()
		self.out.line(
			f"return {RUNTIME}.rpc({json.dumps(route.path)}, [{', '.join(names)}], "
			f"{js_literal(route_param_schemas(route))}, {js_literal(route_response_schema(route))}, "
			f"{'true' if route.returns_result else 'false'});"
		)
		self.out.pop()
		self.out.line("}")

	def _emit_item(self, item: A.Node) -> None:
		exported = isinstance(item, (A.ExportDecl, A.ExposeDecl))
		inner = A.unwrap_item(item)
		if isinstance(inner, A.ImportDecl):
			return
		if isinstance(inner, A.TypeDecl):
			self._emit_type_decl(inner, exported)
		elif isinstance(inner, A.EnumDecl):
			named = self.checked.named_types.get(inner.name)
			if named is not None:
				self.out.line()
				self._emit_enum(inner.name, named, exported)
		elif isinstance(inner, A.FunctionDecl):
			self.out.line()
			self._emit_function(inner, exported)
		elif isinstance(inner, A.Stmt):
			self._emit_stmt(inner, exported)

	# Declarations ------------------------------------------------------------

	def _emit_type_decl(self, decl: A.TypeDecl, exported: bool) -> None:
		if not self.options.typed:
			return
		named = self.checked.named_types.get(decl.name)
		if named is not None:
			body = self.types.record(named.info.body) if named.info.body is not None else "{}"
		else:
			sym = self.checked.info.symbols.get(decl.name)
			body = self._ts(sym.type if sym is not None else None)
		self.out.line()
		self.out.line(f"{'export ' if exported else ''}type {decl.name} = {body};")

	def _emit_enum(self, local: str, named: Named, exported: bool) -> None:
		export = "export " if exported else ""
		variants = js_literal([[name, value] for name, value in named.info.variants])
		value = f"{RUNTIME}.defineEnum({json.dumps(named.decl_id)}, {json.dumps(named.name)}, {variants})"
		if self.options.typed:
			backing = "number" if named.info.backing == INT else "string"
			members = "".join(f"readonly {name}: {local}; " for name, _ in named.info.variants)
			shape = f"{{ {members}from(value: {backing}): {local} | null; values(): Array<{local}> }}"
			self.out.line(f"{export}type {local} = {self.types.enum_value(named)};")
			value = f"{value} as {shape}"
		self.out.line(f"{export}const {js_name(local)} = {value};")

	def _params(self, params: Sequence[A.Param], fn_t: Optional[Function]) -> str:
		out = []
		for i, p in enumerate(params):
			t = fn_t.params[i] if fn_t is not None and i < len(fn_t.params) else None
			out.append(js_name(p.name) + self._annotation(t))
		return ", ".join(out)

	def _return_annotation(self, fn_t: Optional[Function], is_async: bool) -> str:
		if not self.options.typed or fn_t is None:
			return ""
		ret = self._ts(fn_t.ret)
		return f": Promise<{ret}>" if is_async else f": {ret}"

	def _emit_function(self, fn: A.FunctionDecl, exported: bool = False) -> None:
		fn_t = self.checked.fn_types.get(self._key(fn))
		is_async = self.linked.is_async(fn)
		head = "".join(
			(
				"export " if exported else "",
				"async " if is_async else "",
				f"function {js_name(fn.name)}({self._params(fn.params, fn_t)})",
				self._return_annotation(fn_t, is_async),
			)
		)
		self.out.line(head + " {")
		self.out.push()
		if isinstance(fn.body, A.Block):
			for stmt in fn.body.statements:
				self._emit_stmt(stmt)
		elif fn_t is not None and fn_t.ret == VOID:
			self.out.line(self._statement_expr(fn.body) + ";")
		else:
			self.out.line(f"return {self.expr(fn.body)};")
		self.out.pop()
		self.out.line("}")

	# Statements --------------------------------------------------------------

	def _statement_expr(self, e: A.Expr) -> str:
		text = self.expr(e)
		if text.startswith("{"):
			return f"({text})"
		return text

	def _emit_block(self, block: A.Block) -> None:
		self.out.push()
		for stmt in block.statements:
			self._emit_stmt(stmt)
		self.out.pop()

	def _emit_stmt(self, stmt: A.Stmt, exported: bool = False) -> None:
		w = self.out
		export = "export " if exported else ""
		if isinstance(stmt, A.ExprStmt):
			w.line(self._statement_expr(stmt.expr) + ";")
		elif isinstance(stmt, A.VariableDecl):
			mutated = self._mutated(stmt, stmt.name)
			keyword = "let" if mutated else "const"
			ann = self._annotation(self._type(stmt)) if (stmt.type_expr is not None or mutated) else ""
			w.line(f"{export}{keyword} {js_name(stmt.name)}{ann} = {self.expr(stmt.value)};")
		elif isinstance(stmt, A.DeclareStmt):
			ann = self._annotation(self.lowered.synthetic_types.get(stmt.node_id))
			init = f" = {self.expr(stmt.init)}" if stmt.init is not None else ""
			w.line(f"let {js_name(stmt.name)}{ann}{init};")
		elif isinstance(stmt, A.ResultTemp):
			w.line(f"const {stmt.name} = {self.expr(stmt.value)};")
		elif isinstance(stmt, A.MutationStmt):
			target = js_name(stmt.target)
			if stmt.op == "/=" and self._type(stmt) == INT:
				w.line(f"{target} = Math.trunc({target} / {self.atom(stmt.value)});")
			else:
				w.line(f"{target} {stmt.op} {self.expr(stmt.value)};")
		elif isinstance(stmt, A.IndexAssign):
			self._emit_index_assign(stmt)
		elif isinstance(stmt, A.DestructureStmt):
			mutated = any(self._mutated(stmt, n) for n in stmt.names)
			names = ", ".join("" if n == "_" else js_name(n) for n in stmt.names)
			w.line(f"{'let' if mutated else 'const'} [{names}] = {self.expr(stmt.value)};")
		elif isinstance(stmt, A.IfStmt):
			self._emit_if(stmt)
		elif isinstance(stmt, A.WhileStmt):
			w.line(f"while ({self.expr(stmt.cond)}) {{")
			self._emit_block(stmt.body)
			w.line("}")
		elif isinstance(stmt, A.ForStmt):
			self._emit_for(stmt)
		elif isinstance(stmt, A.ReturnStmt):
			w.line("return;" if stmt.value is None else f"return {self.expr(stmt.value)};")
		elif isinstance(stmt, A.BreakStmt):
			w.line("break;")
		elif isinstance(stmt, A.ContinueStmt):
			w.line("continue;")
		elif isinstance(stmt, A.FunctionDecl):
			self._emit_function(stmt)
		else:
			raise NotImplementedError(f"codegen does not handle stmt {type(stmt).__name__}")

	def _emit_index_assign(self, stmt: A.IndexAssign) -> None:
		target = stmt.target
		obj_t = strip_null(self._type(target.obj) or VOID)
		obj = self.atom(target.obj)
		index = self.expr(target.index)
		is_map = isinstance(obj_t, Collection) and obj_t.kind == "map"
		if stmt.op == "=":
			value = self.expr(stmt.value)
			if is_map:
				self.out.line(f"{obj}.set({index}, {value});")
			else:
				self.out.line(f"{RUNTIME}.listSet({obj}, {index}, {value});")
			return
		update = self._compound("__cur", stmt.op[:-1], stmt.value, self._type(target))
		helper = "mapUpdate" if is_map else "listUpdate"
		self.out.line(f"{RUNTIME}.{helper}({obj}, {index}, (__cur) => {update});")

	def _compound(self, current: str, op: str, value: A.Expr, slot: Optional[Type]) -> str:
		if op == "/" and slot == INT:
			return f"Math.trunc({current} / {self.atom(value)})"
		return f"{current} {op} {self.atom(value)}"

	def _emit_if(self, stmt: A.IfStmt) -> None:
		w = self.out
		w.line(f"if ({self.expr(stmt.cond)}) {{")
		self._emit_block(stmt.then_block)
		other = stmt.else_block
		while isinstance(other, A.IfStmt):
			w.line(f"}} else if ({self.expr(other.cond)}) {{")
			self._emit_block(other.then_block)
			other = other.else_block
		if other is not None:
			w.line("} else {")
			self._emit_block(other)
		w.line("}")

	def _emit_for(self, stmt: A.ForStmt) -> None:
		mutated = self._mutated(stmt, stmt.item_name) or (
			stmt.index_name is not None and self._mutated(stmt, stmt.index_name)
		)
		keyword = "let" if mutated else "const"
		iterable_t = strip_null(self._type(stmt.iterable) or VOID)
		source = self.atom(stmt.iterable)
		item = js_name(stmt.item_name)
		if stmt.index_name is None:
			head = f"for ({keyword} {item} of {source})"
		else:
			index = "" if stmt.index_name == "_" else js_name(stmt.index_name)
			if isinstance(iterable_t, Collection) and iterable_t.kind == "map":
				head = f"for ({keyword} [{index}, {item}] of {source})"
			elif isinstance(iterable_t, Collection) and iterable_t.kind == "list":
				head = f"for ({keyword} [{index}, {item}] of {source}.entries())"
			else:
				head = f"for ({keyword} [{index}, {item}] of Array.from({source}).entries())"
		self.out.line(head + " {")
		self._emit_block(stmt.body)
		self.out.line("}")

	def _inline_block(self, stmts: Sequence[A.Stmt]) -> str:
		"""Render statements as a `{ ... }` block usable inside an expression."""
		if not stmts:
			return "{}"
		saved = self.out
		self.out = _Writer(saved.depth + 1)
		try:
			for stmt in stmts:
				self._emit_stmt(stmt)
			inner = self.out.lines
		finally:
			self.out = saved
		return "{\n" + "\n".join(inner) + "\n" + "\t" * saved.depth + "}"

	# Expressions -------------------------------------------------------------

	def atom(self, e: A.Expr) -> str:
		text = self.expr(e)
		if isinstance(e, _PRIMARY):
			return text
		return f"({text})"

	def expr(self, e: A.Expr) -> str:
		if isinstance(e, A.Literal):
			return _literal(e)
		if isinstance(e, A.Name):
			if e.ident == "none":
				sym = self.checked.name_symbols.get(self._key(e))
				if sym is None or sym.kind is SymbolKind.BUILTIN:
					return "null"
			return js_name(e.ident)
		if isinstance(e, A.Binary):
			return self._binary(e)
		if isinstance(e, A.Unary):
			return f"{e.op}{self.atom(e.operand)}"
		if isinstance(e, A.Call):
			return self._call(e)
		if isinstance(e, A.Member):
			return f"{self.atom(e.obj)}{'?.' if e.optional else '.'}{e.name}"
		if isinstance(e, A.Index):
			return self._index(e)
		if isinstance(e, A.ListLiteral):
			items = ", ".join(self.expr(i) for i in e.items)
			t = self._type(e)
			if isinstance(t, Collection) and t.kind == "set":
				return f"new Set([{items}])"
			return f"[{items}]"
		if isinstance(e, A.TupleLiteral):
			return "[" + ", ".join(self.expr(i) for i in e.items) + "]"
		if isinstance(e, A.ObjectLiteral):
			return self._object(e)
		if isinstance(e, A.InterpolatedString):
			return self._template(e)
		if isinstance(e, A.Lambda):
			return self._lambda(e)
		if isinstance(e, A.MatchExpr):
			return self._match(e)
		if isinstance(e, A.MarkupElement):
			return self._markup(e)
		if isinstance(e, A.ResultIsErr):
			return f"!{self.atom(e.operand)}.ok"
		if isinstance(e, A.ResultValue):
			return f"{self.atom(e.operand)}.value"
		if isinstance(e, A.ResultError):
			return f"{self.atom(e.operand)}.error"
		if isinstance(e, A.WrapOk):
			return f"{RUNTIME}.ok({self.expr(e.value) if e.value is not None else ''})"
		if isinstance(e, A.WrapErr):
			return f"{RUNTIME}.err({self.expr(e.value)})"
		if isinstance(e, A.WidenError):
			return f"{RUNTIME}.toError({self.expr(e.value)})"
		if isinstance(e, A.Unwrap):
			return f"{RUNTIME}.unwrap({self.expr(e.operand)})"
		raise NotImplementedError(f"codegen does not handle expr {type(e).__name__}")

	def _binary(self, e: A.Binary) -> str:
		op = e.op
		if op in ("==", "!="):
			const = self.checked.const_equality.get(self._key(e))
			if const is not None:
				# Operands of different types never compare equal; still evaluate them.
				outcome = "true" if const else "false"
				return f"{RUNTIME}.always({outcome}, {self.expr(e.left)}, {self.expr(e.right)})"
			left, right = self.atom(e.left), self.atom(e.right)
			if _is_null(e.left) or _is_null(e.right):
				return f"{left} {op} {right}"
			return f"{left} {op}= {right}"
		left, right = self.atom(e.left), self.atom(e.right)
		if op == "?:":
			return f"{left} || {right}"
		if op == "/" and self._type(e) == INT:
			return f"Math.trunc({left} / {right})"
		return f"{left} {op} {right}"

	def _index(self, e: A.Index) -> str:
		obj = self.atom(e.obj)
		index = self.expr(e.index)
		if self.checked.member_kinds.get(self._key(e)) is MemberKind.TUPLE_ELEM:
			return f"{obj}[{index}]"
		obj_t = strip_null(self._type(e.obj) or VOID)
		if isinstance(obj_t, Collection) and obj_t.kind == "map":
			return f"{RUNTIME}.mapGet({obj}, {index})"
		return f"{RUNTIME}.at({obj}, {index})"

	def _object(self, e: A.ObjectLiteral) -> str:
		t = strip_null(self._type(e) or VOID)
		if e.is_map or (isinstance(t, Collection) and t.kind == "map"):
			if not e.entries:
				return "new Map()"
			pairs = ", ".join(f"[{json.dumps(entry.key)}, {self.expr(entry.value)}]" for entry in e.entries)
			return f"new Map([{pairs}])"
		if not e.entries:
			return "{}"
		fields = ", ".join(f"{_property(entry.key)}: {self.expr(entry.value)}" for entry in e.entries)
		return "{ " + fields + " }"

	def _template(self, e: A.InterpolatedString) -> str:
		parts = []
		for part in e.parts:
			if isinstance(part, str):
				parts.append(_template_text(part))
				continue
			text = self.expr(part)
			if self._type(part) != STR:
				text = f"{RUNTIME}.str({text})"
			parts.append("${" + text + "}")
		return "`" + "".join(parts) + "`"

	def _lambda(self, lam: A.Lambda) -> str:
		fn_t = self.checked.fn_types.get(self._key(lam))
		is_async = self.linked.is_async(lam)
		head = f"{'async ' if is_async else ''}({self._params(lam.params, fn_t)}){self._return_annotation(fn_t, is_async)} =>"
		if isinstance(lam.body, A.Block):
			return f"{head} {self._inline_block(lam.body.statements)}"
		return f"{head} {self._statement_expr(lam.body)}"

	def _match(self, m: A.MatchExpr) -> str:
		self._matches += 1
		subject = f"__v{self._matches}" if m.subject is not None else None
		parts = []
		if m.subject is not None:
			parts.append(f"const {subject} = {self.expr(m.subject)};")
		for arm in m.arms:
			value = self.expr(arm.value)
			if arm.is_wildcard:
				parts.append(f"return {value};")
				break
			if subject is None:
				cond = self.expr(arm.pattern)
			elif _is_null(arm.pattern):
				cond = f"{subject} == null"
			else:
				cond = f"{subject} === {self.atom(arm.pattern)}"
			parts.append(f"if ({cond}) return {value};")
		else:
			parts.append("return null;")
		body = "{ " + " ".join(parts) + " }"
		if self._awaits_inside(m):
			return f"(await (async () => {body})())"
		return f"(() => {body})()"

	def _awaits_inside(self, node: A.Node) -> bool:
		"""Whether an awaited call runs directly inside `node` (not in a nested lambda)."""
		stack = list(A.iter_children(node))
		while stack:
			n = stack.pop()
			if isinstance(n, (A.Lambda, A.FunctionDecl)):
				continue
			if isinstance(n, A.Call) and self.linked.is_awaited(n):
				return True
			stack.extend(A.iter_children(n))
		return False

	def _markup(self, el: A.MarkupElement) -> str:
		if not el.tag:
			tag = "null"
		elif el.is_component:
			tag = js_name(el.tag)
		else:
			tag = json.dumps(el.tag)
		props = []
		events = []
		for attr in el.attrs:
			value = self.expr(attr.value) if attr.value is not None else "true"
			(events if attr.event else props).append(f"{json.dumps(attr.name)}: {value}")
		children = []
		for child in el.children:
			if isinstance(child, A.MarkupText):
				children.append(json.dumps(child.text, ensure_ascii=False))
			else:
				children.append(self.expr(child))
		return f"{RUNTIME}.h({tag}, {{{', '.join(props)}}}, {{{', '.join(events)}}}, [{', '.join(children)}])"

	# Calls -------------------------------------------------------------------

	def _call(self, call: A.Call) -> str:
		target = self.checked.call_targets.get(self._key(call))
		text = self._call_text(call, target)
		if self.linked.is_awaited(call):
			return f"(await {text})"
		return text

	def _args(self, call: A.Call) -> str:
		return ", ".join(self.expr(a) for a in call.args)

	def _call_text(self, call: A.Call, target: Optional[CallTarget]) -> str:
		if target is None:
			return f"{self.atom(call.callee)}({self._args(call)})"
		if target.kind is CallKind.BUILTIN:
			return self._builtin(call, target.name)
		if target.kind is CallKind.METHOD and isinstance(call.callee, A.Member):
			return self._method(call, call.callee, target.receiver or "", target.name)
		if target.kind is CallKind.VALIDATE and isinstance(call.callee, A.Member):
			schema = js_literal(schema_of(target.type_arg)) if target.type_arg is not None else '{"kind": "unknown"}'
			return f"{RUNTIME}.validate({self.expr(call.callee.obj)}, {schema})"
		return f"{self.atom(call.callee)}({self._args(call)})"

	def _builtin(self, call: A.Call, name: str) -> str:
		args = call.args
		if name == "print":
			return f"{RUNTIME}.print({self._args(call)})"
		if name in ("ok", "err", "error", "parse"):
			return f"{RUNTIME}.{name}({self._args(call)})"
		if not args:
			return "null"
		arg = args[0]
		arg_t = strip_null(self._type(arg) or VOID)
		hidden = self._key(call) in self.checked.result_calls
		if name == "len":
			if arg_t == STR or (isinstance(arg_t, Collection) and arg_t.kind == "list"):
				return f"{self.atom(arg)}.length"
			if isinstance(arg_t, Collection):
				return f"{self.atom(arg)}.size"
			return f"{RUNTIME}.len({self.expr(arg)})"
		if name == "str":
			if self._type(arg) == STR:
				return self.atom(arg)
			return f"{RUNTIME}.str({self.expr(arg)})"
		if name == "int":
			if hidden:
				return f"{RUNTIME}.toInt({self.expr(arg)})"
			if arg_t == FLOAT:
				return f"Math.trunc({self.expr(arg)})"
			return self.atom(arg)
		if name == "float":
			if hidden:
				return f"{RUNTIME}.toFloat({self.expr(arg)})"
			return self.atom(arg)
		# some(x): options are the value itself.
		return self.atom(arg)

	def _method(self, call: A.Call, callee: A.Member, receiver: str, name: str) -> str:
		obj = self.atom(callee.obj)
		args = self._args(call)
		if receiver == "str":
			simple = {"upper": "toUpperCase", "lower": "toLowerCase", "trim": "trim", "split": "split", "contains": "includes"}
			if name == "len":
				return f"{obj}.length"
			return f"{obj}.{simple[name]}({args})"
		if receiver == "list":
			if name == "add":
				return f"{obj}.push({args})"
			if name in ("get", "set", "delete"):
				helper = {"get": "listGet", "set": "listSet", "delete": "listDelete"}[name]
				return f"{RUNTIME}.{helper}({obj}, {args})"
			if name == "contains":
				return f"{obj}.includes({args})"
			if name == "len":
				return f"{obj}.length"
			return f"{obj}.{name}({args})"
		if receiver == "map":
			if name == "get":
				return f"{RUNTIME}.mapGet({obj}, {args})"
			if name in ("keys", "values"):
				return f"Array.from({obj}.{name}())"
			if name == "len":
				return f"{obj}.size"
			return f"{obj}.{name}({args})"
		if receiver == "set":
			if name == "len":
				return f"{obj}.size"
			return f"{obj}.{name}({args})"
		return f"{obj}.{name}({args})"


def _literal(e: A.Literal) -> str:
	if e.kind == "null":
		return "null"
	if e.kind == "bool":
		return "true" if e.value else "false"
	if e.kind == "str":
		return json.dumps(e.value, ensure_ascii=False)
	if e.kind == "float":
		return repr(float(e.value))  # type: ignore[arg-type]
	return str(e.value)


def _property(key: str) -> str:
	if key.isidentifier():
		return key
	return json.dumps(key)


def _ordered(*groups: Dict[str, List[str]]) -> List[str]:
	seen: List[str] = []
	for group in groups:
		for key in group:
			if key not in seen:
				seen.append(key)
	return seen


def emit_module(linked: LinkedModule, program: Dict[str, LinkedModule], options: EmitOptions) -> str:
	return ModuleEmitter(linked, program, options).emit()


__all__ = ["EmitOptions", "ModuleEmitter", "emit_module"]
