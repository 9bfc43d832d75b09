# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Tern front end: lexer, terminator insertion, LALR parser and AST."""

from . import ast
from .lexer import Token, TokenCategory, tokenize
from .parser import ParseError, parse_module, parse_tree, tokenize_for_parser

__all__ = [
	"ParseError",
	"Token",
	"TokenCategory",
	"ast",
	"parse_module",
	"parse_tree",
	"tokenize",
	"tokenize_for_parser",
]
