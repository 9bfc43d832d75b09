# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
tern: the Tern language toolchain.

Packages:
  ternc:     the compiler (lexer, parser, checker, propagation, linker, codegen, driver)
  tern_core: support files shipped next to generated code (the JS runtime)
"""

__version__ = "0.1.0"
