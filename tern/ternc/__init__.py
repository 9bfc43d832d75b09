# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
ternc: Tern -> TypeScript/JavaScript compiler.

Source -> tokens (parser.lexer) -> terminators (parser.postlex)
   -> AST (parser.parser)
   -> checked module + side tables (checker)
   -> lowered module, explicit error propagation (stage1)
   -> linked program: boundaries, routes, stubs, async calls (linker)
   -> TS/JS text (codegen)
"""

from .config import CompilerConfig, ConfigError, load_config
from .pipeline import ProgramResult, compile_program, compile_sources, emit_program

__all__ = [
	"CompilerConfig",
	"ConfigError",
	"ProgramResult",
	"compile_program",
	"compile_sources",
	"emit_program",
	"load_config",
]
