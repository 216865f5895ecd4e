"""
Errors raised while converting a WebAssembly module into glue artifacts.

Every error is fatal: the conversion is aborted and no artifact is written.
"""


class GlueError(Exception):
    """Base class for all conversion errors."""
    pass


class UnsupportedType(GlueError):
    """A value type outside i32/i64/f32/f64 was used."""
    pass


class UnsupportedSignature(GlueError):
    """A function type declares more than one return value."""
    pass


class UnresolvedExport(GlueError):
    """An exported function resolves to an imported function."""
    pass


class MissingIndex(GlueError, IndexError):
    """An index refers to a type, function, table, memory or global that was never declared."""
    pass


class BadInitializer(GlueError):
    """An initializer expression is not the required integer constant."""
    pass


class OutOfBounds(GlueError):
    """A data segment does not fit into its target memory."""
    pass


class DecoderError(GlueError, ValueError):
    """The byte stream is not well-formed WebAssembly."""
    pass


class MissingPrecompiledObject(GlueError):
    """The module carries no precompiled object section and one was required."""
    pass


class DuplicateSymbol(GlueError):
    """Two distinct import or export names map to the same C macro name."""
    pass
