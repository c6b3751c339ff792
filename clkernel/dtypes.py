"""
Element types of kernel arguments and conversions of host values to them.
"""

import numpy


# Canonical element types and the corresponding ``numpy`` types.
ELEMENT_TYPES = {
    'uint8': numpy.uint8,
    'uint16': numpy.uint16,
    'uint32': numpy.uint32,
    'uint64': numpy.uint64,
    'int8': numpy.int8,
    'int16': numpy.int16,
    'int32': numpy.int32,
    'int64': numpy.int64,
    'half': numpy.float16,
    'float': numpy.float32,
    'double': numpy.float64,
    }

# Kernel language type names translated to canonical element types.
_CTYPE_TO_ELEMENT_TYPE = {
    'uchar': 'uint8',
    'unsigned char': 'uint8',
    'ushort': 'uint16',
    'unsigned short': 'uint16',
    'uint': 'uint32',
    'unsigned int': 'uint32',
    'unsigned': 'uint32',
    'ulong': 'uint64',
    'unsigned long': 'uint64',
    'char': 'int8',
    'signed char': 'int8',
    'short': 'int16',
    'signed short': 'int16',
    'int': 'int32',
    'signed int': 'int32',
    'signed': 'int32',
    'long': 'int64',
    'signed long': 'int64',
    'half': 'half',
    'float': 'float',
    'double': 'double',
    }

# Alternative spellings accepted for user-defined types.
_ELEMENT_TYPE_ALIASES = {
    'single': 'float',
    'float16': 'half',
    'float32': 'float',
    'float64': 'double',
    }


def element_type_for(ctype):
    """
    Translates a kernel language type name (e.g. ``unsigned int``)
    to a canonical element type (e.g. ``uint32``).
    Unknown names (macros, typedefs) are returned verbatim.
    """
    ctype = " ".join(ctype.split())
    return _CTYPE_TO_ELEMENT_TYPE.get(ctype, ctype)


def is_resolved(element_type):
    """
    Returns ``True`` if ``element_type`` belongs to the set of canonical element types.
    """
    return element_type in ELEMENT_TYPES


def normalize_element_type(element_type):
    """
    Returns the canonical name for a user-supplied element type,
    or raises ``ValueError`` if it is not one of the supported types.
    """
    element_type = _ELEMENT_TYPE_ALIASES.get(element_type, element_type)
    if element_type not in ELEMENT_TYPES:
        raise ValueError(
            "Unknown element type: " + repr(element_type) + "; "
            "must be one of " + ", ".join(sorted(ELEMENT_TYPES)))
    return element_type


def dtype_for(element_type):
    """
    Returns the ``numpy.dtype`` for a canonical element type.
    """
    return numpy.dtype(ELEMENT_TYPES[element_type])


def cast(val, element_type):
    """
    Returns a fresh ``numpy`` array with the contents of ``val`` cast to ``element_type``.
    A copy is made even if the type already matches.
    """
    return numpy.array(val, dtype=dtype_for(element_type), copy=True)


def is_complex(val):
    """
    Returns ``True`` if ``val`` (an array or a scalar) holds complex values.
    """
    return numpy.iscomplexobj(val)


def is_scalar(val):
    """
    Returns ``True`` if ``val`` contains a single element.
    Zero-dimensional arrays and arrays of any shape with one element are considered scalars.
    """
    return numpy.size(val) == 1


def real_for(dtype):
    """
    Returns floating point dtype corresponding to given complex ``dtype``.
    """
    return numpy.finfo(dtype).dtype


def complex_for(dtype):
    """
    Returns complex dtype able to hold pairs of values of the real ``dtype``.
    """
    dtype = numpy.dtype(dtype)
    if dtype.kind == 'f':
        return numpy.result_type(dtype, numpy.complex64)
    else:
        return numpy.dtype(numpy.complex128)


def complex_to_real(val):
    """
    Encodes complex ``val`` as a real array with an additional leading dimension of size 2,
    holding the real and imaginary parts.
    """
    val = numpy.asarray(val)
    return numpy.stack([val.real, val.imag])


def real_to_complex(val):
    """
    Inverse of :py:func:`complex_to_real`.
    """
    val = numpy.asarray(val)
    result = numpy.empty(val.shape[1:], complex_for(val.dtype))
    result.real = val[0]
    result.imag = val[1]
    return result
