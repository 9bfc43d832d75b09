# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from tern.ternc.checker import check_program, collect_module
from tern.ternc.core.contexts import context_for_path, module_id_for_path
from tern.ternc.core.diagnostics import DiagnosticKind
from tern.ternc.parser import ast as A
from tern.ternc.parser import parse_module


def _check_sources(sources: dict):
	infos = []
	for path, src in sources.items():
		tree = parse_module(src, path)
		infos.append(collect_module(module_id_for_path(path), path, context_for_path(path), tree))
	checked = check_program(infos)
	diags = [d for info in infos for d in info.diagnostics]
	for cm in checked.values():
		diags.extend(cm.diagnostics)
	return checked, diags


def _check(src: str, path: str = "main.server.tn"):
	checked, diags = _check_sources({path: src})
	return checked[module_id_for_path(path)], diags


def _messages(diags) -> list[str]:
	return [d.message for d in diags]


def test_well_typed_program_has_no_diagnostics() -> None:
	src = """
add(a: int, b: int): int = a + b
main() {
	total = add(1, 2)
	print("total {total}")
}
"""
	_, diags = _check(src)
	assert diags == []


def test_declared_type_mismatch() -> None:
	_, diags = _check('x: int = "a"\n')
	assert _messages(diags) == ["type mismatch for 'x': expected int, found str"]
	assert diags[0].kind is DiagnosticKind.TYPE
	assert diags[0].phase == "typecheck"
	assert diags[0].span.file == "main.server.tn"


def test_undefined_name() -> None:
	_, diags = _check("y = nope + 1\n")
	assert "undefined name 'nope'" in _messages(diags)
	assert any(d.code == "E-UNDEFINED" for d in diags)


def test_call_arity() -> None:
	_, diags = _check("one(a: int): int = a\nv = one(1, 2)\n")
	assert _messages(diags) == ["'one' expects 1 argument, got 2"]
	assert diags[0].code == "E-ARITY"


def test_compound_assignment_without_accessor_is_a_mutability_error() -> None:
	src = """
main() {
	count = 0
	count += 1
}
"""
	_, diags = _check(src)
	assert _messages(diags) == ["cannot modify immutable 'count' directly; use 'count.mut += ...'"]
	assert diags[0].kind is DiagnosticKind.MUTABILITY
	assert diags[0].code == "E-MUT"


def test_mutation_through_accessor_marks_binding_mutated() -> None:
	src = """
main() {
	count = 0
	count.mut += 1
	print(count)
}
"""
	cm, diags = _check(src)
	assert diags == []
	(fn,) = cm.ast.items
	decl = fn.body.statements[0]
	assert isinstance(decl, A.VariableDecl)
	assert cm.is_mutated(decl.node_id, "count")


def test_rebinding_is_rejected() -> None:
	src = """
main() {
	x = 1
	x = 2
}
"""
	_, diags = _check(src)
	assert len(diags) == 1
	assert diags[0].message.startswith("'x' is already bound")
	assert diags[0].code == "E-MUT"


def test_enum_compared_with_backing_value() -> None:
	src = """
enum Role { Admin = "admin", Guest = "guest" }
isAdmin(r: Role): bool = r == "admin"
"""
	_, diags = _check(src)
	assert len(diags) == 1
	assert diags[0].message.startswith("cannot compare enum 'Role' with its backing value")


def test_duplicate_enum_variant() -> None:
	_, diags = _check("enum Color { Red, Red }\n")
	assert "duplicate variant 'Red' in enum 'Color'" in _messages(diags)
	assert any(d.code == "E-ENUM" for d in diags)


def test_duplicate_top_level_declaration() -> None:
	_, diags = _check("f(): int = 1\nf(): int = 2\n")
	assert [d.code for d in diags] == ["E-DUPLICATE"]
	assert diags[0].message.startswith("duplicate declaration of 'f'")


def test_break_outside_loop() -> None:
	_, diags = _check("main() {\n\tbreak\n}\n")
	assert _messages(diags) == ["'break' outside a loop"]


def test_match_over_all_enum_variants_is_exhaustive() -> None:
	src = """
enum Color { Red, Green }
label(c: Color) = match c {
	Color.Red = "r"
	Color.Green = "g"
}
"""
	cm, diags = _check(src)
	assert diags == []
	fn = cm.ast.items[1]
	assert cm.match_exhaustive[fn.body.node_id] is True


def test_missing_variant_warns_non_exhaustive() -> None:
	src = """
enum Color { Red, Green }
label(c: Color) = match c {
	Color.Red = "r"
}
"""
	cm, diags = _check(src)
	assert [(d.code, d.severity) for d in diags] == [("W-MATCH-EXHAUSTIVE", "warning")]
	fn = cm.ast.items[1]
	assert cm.match_exhaustive[fn.body.node_id] is False


def test_arm_after_wildcard_is_unreachable() -> None:
	src = """
enum Color { Red, Green }
label(c: Color) = match c {
	_ = "x"
	Color.Red = "r"
}
"""
	_, diags = _check(src)
	assert [d.code for d in diags] == ["W-MATCH-UNREACHABLE"]
	assert diags[0].message == "unreachable match arm after '_'"


def test_import_of_unexported_name() -> None:
	sources = {
		"a.server.tn": "export f(): int = 1\ng(): int = 2\n",
		"b.server.tn": 'import { g, h } from "./a.server"\n',
	}
	_, diags = _check_sources(sources)
	assert sorted(_messages(diags)) == [
		"'g' is not exported by module 'a.server'",
		"module 'a.server' has no export 'h'",
	]
	assert {d.code for d in diags} == {"E-IMPORT"}


def test_imported_function_is_typed_across_modules() -> None:
	sources = {
		"a.server.tn": "export f(): int = 1\n",
		"b.server.tn": 'import { f } from "./a.server"\nx: str = f()\n',
	}
	_, diags = _check_sources(sources)
	assert _messages(diags) == ["type mismatch for 'x': expected str, found int"]


def test_enum_backing_values_must_agree() -> None:
	_, diags = _check('enum Code { A = "a", B = 2 }\nenum Dup { X = 1, Y = 1 }\n')
	messages = _messages(diags)
	assert "enum 'Code' mixes str and int backing values" in messages
	assert "duplicate backing value 1 in enum 'Dup'" in messages


def test_non_exhaustive_match_keeps_the_arm_type() -> None:
	src = """
f(v: str): int = match v {
	"a" = 1
	"b" = 2
}
g(x: int): str = match {
	x > 1 = "a"
}
"""
	cm, diags = _check(src)
	assert [(d.code, d.severity) for d in diags] == [
		("W-MATCH-EXHAUSTIVE", "warning"),
		("W-MATCH-EXHAUSTIVE", "warning"),
	]
	f, g = cm.ast.items
	assert cm.type_of(f.body).render() == "int"
	assert cm.type_of(g.body).render() == "str"


def test_equality_between_different_types_is_constant() -> None:
	cm, diags = _check('a = 1 == "a"\nb = 1 != "a"\nc = null == null\nd = 1 == 2\n')
	assert diags == []
	a, b, c, d = cm.ast.items
	assert cm.const_equality[a.value.node_id] is False
	assert cm.const_equality[b.value.node_id] is True
	# Same-typed operands compare at runtime.
	assert c.value.node_id not in cm.const_equality
	assert d.value.node_id not in cm.const_equality


def test_fallback_operators_accept_nullable_and_falsy_left_sides() -> None:
	src = """
name(s: str?): str = s ?? "anon"
label(s: str?): str = s ?: "none"
count(n: int): int = n ?: 1
"""
	cm, diags = _check(src)
	assert diags == []
	assert [cm.type_of(fn.body).render() for fn in cm.ast.items] == ["str", "str", "int"]


def test_elvis_rejects_a_record_left_side() -> None:
	src = """
type P = { a: int }
pick(p: P): P = p ?: p
"""
	_, diags = _check(src)
	assert _messages(diags) == ["left side of '?:' must be nullable or a falsy-capable primitive, found P"]
	assert diags[0].severity == "error"


def test_coalesce_on_non_nullable_left_side_warns() -> None:
	cm, diags = _check("pick(n: int): int = n ?? 5\n")
	assert [(d.code, d.severity) for d in diags] == [("W-COALESCE-NON-NULL", "warning")]
	assert diags[0].message == "left side of '??' is never null (int); the fallback is unused"
	assert cm.type_of(cm.ast.items[0].body).render() == "int"
