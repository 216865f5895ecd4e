"""
Mapping of WebAssembly value types onto the native C ABI expected by
WAVM-precompiled objects.

Every generated function takes a leading untyped context pointer. A
function without results returns that pointer back (void*); a function
with one result returns a two-field wrapper struct holding the context
pointer and the value.
"""

from typing import Dict

from ..errors import UnsupportedSignature, UnsupportedType
from ..formats.wasm_structures import FuncType, ValueType


# C type mappings for the four numeric value types
C_TYPE_MAP: Dict[ValueType, str] = {
    ValueType.I32: "int32_t",
    ValueType.I64: "int64_t",
    ValueType.F32: "float",
    ValueType.F64: "double",
}

CONTEXT_POINTER_TYPE = "void*"
RETURN_WRAPPER_PREFIX = "wavm_ret_"


def map_type(value_type: ValueType) -> str:
    """
    Get the C scalar type for a WebAssembly value type.

    Raises:
        UnsupportedType: For anything but i32, i64, f32 and f64
    """
    try:
        return C_TYPE_MAP[value_type]
    except KeyError:
        name = value_type.name if isinstance(value_type, ValueType) else repr(value_type)
        raise UnsupportedType(f"Unsupported type: {name}") from None


def return_wrapper_name(value_type: ValueType) -> str:
    """Name of the wrapper struct returned by functions yielding value_type."""
    return f"{RETURN_WRAPPER_PREFIX}{map_type(value_type)}"


def return_wrapper_definition(value_type: ValueType) -> str:
    """C typedef of the return wrapper for value_type."""
    return (
        "typedef struct {\n"
        f"  {CONTEXT_POINTER_TYPE} dummy;\n"
        f"  {map_type(value_type)} value;\n"
        f"}} {return_wrapper_name(value_type)};\n"
    )


def check_signature(func_type: FuncType) -> None:
    """Raise UnsupportedSignature if func_type has more than one result."""
    if len(func_type.returns) > 1:
        results = ", ".join(t.name for t in func_type.returns)
        raise UnsupportedSignature(
            f"Invalid func type: {len(func_type.returns)} results ({results}), at most one is supported"
        )


def function_abi(func_type: FuncType, symbol_name: str) -> str:
    """
    Render the native declaration of a function.

    Args:
        func_type: WebAssembly signature of the function
        symbol_name: Name of the native symbol

    Returns:
        Declaration text without trailing semicolon, e.g.
        "wavm_ret_int32_t (functionDef0) (void*, int32_t)"
    """
    check_signature(func_type)
    params = [CONTEXT_POINTER_TYPE]
    params.extend(map_type(t) for t in func_type.params)
    if func_type.returns:
        return_type = return_wrapper_name(func_type.returns[0])
    else:
        return_type = CONTEXT_POINTER_TYPE
    return f"{return_type} ({symbol_name}) ({', '.join(params)})"
