"""
Extraction of kernel signatures from OpenCL C sources
and translation of the kernel parameters to argument descriptors.

The source is processed in two passes: first comments and preprocessor directives are removed,
then the ``kernel void <name>(...)`` declarations are located
and their parameter lists are extracted with bracket matching,
so that nested parentheses and array sizes do not confuse the parser.

.. note::

    Preprocessor directives are dropped, not expanded,
    so kernels hidden by conditional compilation are still visible here.
    Attributes with parenthesized arguments (``__attribute__((...))``) are not supported.
"""

import collections
import re

from clkernel import dtypes
from clkernel.errors import AmbiguousKernel, KernelNotFound, InvalidAliasCount


IN = 'in'
INOUT = 'inout'

SCALAR = 'scalar'
VECTOR = 'vector'


KernelInterface = collections.namedtuple('KernelInterface', ['name', 'signature'])


_KERNEL_DECL_RE = re.compile(r"(?<!\w)(?:__)?kernel\s+void\s+(?P<name>[A-Za-z_]\w*)\s*\(")

_CONST_RE = re.compile(r"(?<!\w)(?:__)?const(?:ant)?(?!\w)")
_ARRAY_RE = re.compile(r"\[[^\]]*\]")
_ATTRIBUTE_RE = re.compile(r"(?<!\w)__\w+__(?!\w)")
_QUALIFIER_RE = re.compile(
    r"(?<!\w)(?:__)?(?:global|constant|local|private|generic|const|volatile|restrict"
    r"|read_only|write_only|read_write)(?!\w)")
_VECTOR_WIDTH_RE = re.compile(r"(?<=[A-Za-z_])\d{1,2}$")


class ArgumentDescriptor:
    """
    Describes a single kernel parameter.

    .. py:attribute:: name

        Parameter name (an empty string if the declaration has none).

    .. py:attribute:: direction

        ``'in'`` if the parameter is ``const``-qualified, ``'inout'`` otherwise.

    .. py:attribute:: shape

        ``'vector'`` for pointers and arrays, ``'scalar'`` otherwise.

    .. py:attribute:: ctype

        The kernel language type name, with qualifiers and vector width removed.

    .. py:attribute:: element_type

        One of the canonical element types from :py:data:`clkernel.dtypes.ELEMENT_TYPES`,
        or the raw type name if it could not be translated.
    """

    def __init__(self, name, direction, shape, ctype, element_type=None):
        self.name = name
        self.direction = direction
        self.shape = shape
        self.ctype = ctype
        self.element_type = (
            dtypes.element_type_for(ctype) if element_type is None else element_type)

    @property
    def is_input(self):
        return self.direction == IN

    @property
    def is_vector(self):
        return self.shape == VECTOR

    @property
    def resolved(self):
        return dtypes.is_resolved(self.element_type)

    def with_element_type(self, element_type):
        return ArgumentDescriptor(
            self.name, self.direction, self.shape, self.ctype, element_type=element_type)

    def __eq__(self, other):
        return (
            isinstance(other, ArgumentDescriptor)
            and self.name == other.name
            and self.direction == other.direction
            and self.shape == other.shape
            and self.ctype == other.ctype
            and self.element_type == other.element_type)

    def __hash__(self):
        return hash((type(self), self.name, self.direction, self.shape, self.element_type))

    def __str__(self):
        return " ".join([self.direction, self.element_type, self.shape])

    def __repr__(self):
        return "ArgumentDescriptor({name}, {direction}, {shape}, {element_type})".format(
            name=repr(self.name), direction=self.direction, shape=self.shape,
            element_type=self.element_type)


def _literal_end(src, start):
    quote = src[start]
    pos = start + 1
    while pos < len(src):
        if src[pos] == '\\':
            pos += 2
        elif src[pos] == quote or src[pos] == '\n':
            return pos + 1
        else:
            pos += 1
    return len(src)


def strip_comments(src):
    """
    Removes line (``// ...``) and block (``/* ... */``) comments from ``src``.
    Block comments are replaced by a space, keeping the newlines they contained.
    """
    result = []
    pos = 0
    length = len(src)
    while pos < length:
        if src.startswith('//', pos):
            end = src.find('\n', pos)
            pos = length if end == -1 else end
        elif src.startswith('/*', pos):
            end = src.find('*/', pos + 2)
            end = length if end == -1 else end + 2
            result.append(' ' + '\n' * src.count('\n', pos, end))
            pos = end
        elif src[pos] in '"\'':
            end = _literal_end(src, pos)
            result.append(src[pos:end])
            pos = end
        else:
            result.append(src[pos])
            pos += 1
    return "".join(result)


def strip_preprocessor(src):
    """
    Removes preprocessor directives (including their continuation lines) from ``src``.
    """
    lines = []
    continued = False
    for line in src.split('\n'):
        if continued or line.lstrip().startswith('#'):
            continued = line.rstrip().endswith('\\')
            continue
        lines.append(line)
    return "\n".join(lines)


def _closing_paren(src, lparen):
    depth = 0
    for pos in range(lparen, len(src)):
        ch = src[pos]
        if ch in '([':
            depth += 1
        elif ch in ')]':
            depth -= 1
            if depth == 0:
                return pos if ch == ')' else None
    return None


def find_kernels(src):
    """
    Returns a list of :py:class:`KernelInterface` objects
    for all the kernel declarations found in ``src`` (which must be already stripped of comments),
    in the order of appearance.
    Repeated identical declarations (e.g. a prototype and a definition) are reported once.
    """
    kernels = []
    seen = set()
    for match in _KERNEL_DECL_RE.finditer(src):
        lparen = match.end() - 1
        rparen = _closing_paren(src, lparen)
        if rparen is None:
            continue

        kernel = KernelInterface(match.group('name'), src[lparen+1:rparen])
        key = (kernel.name, " ".join(kernel.signature.split()))
        if key in seen:
            continue
        seen.add(key)
        kernels.append(kernel)

    return kernels


def extract_interface(src, name=None):
    """
    Finds the kernel ``name`` in the source ``src``
    and returns its :py:class:`KernelInterface`.
    If ``name`` is ``None``, the source must contain exactly one kernel.
    """
    code = strip_preprocessor(strip_comments(src))
    kernels = find_kernels(code)
    names = [kernel.name for kernel in kernels]

    if name is None:
        if len(kernels) == 0:
            raise KernelNotFound(None, names)
        if len(kernels) > 1:
            raise AmbiguousKernel(names)
        return kernels[0]

    matching = [kernel for kernel in kernels if kernel.name == name]
    if len(matching) != 1:
        raise KernelNotFound(name, names)
    return matching[0]


def split_parameters(signature):
    """
    Splits the parameter list ``signature`` on top-level commas.
    Returns a list of stripped parameter declarations
    (empty for ``()`` and ``(void)``).
    """
    parts = []
    depth = 0
    current = []
    for ch in signature:
        if ch in '([':
            depth += 1
        elif ch in ')]':
            depth -= 1
        if ch == ',' and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))

    parts = [" ".join(part.split()) for part in parts]
    if parts == [''] or parts == ['void']:
        return []
    return parts


def _split_declaration(declaration):
    decl = _ATTRIBUTE_RE.sub(' ', declaration)
    decl = _QUALIFIER_RE.sub(' ', decl)
    decl = _ARRAY_RE.sub(' ', decl)
    tokens = decl.replace('*', ' ').split()

    # The last token is the parameter name, unless the declaration is unnamed.
    if len(tokens) > 1:
        return " ".join(tokens[:-1]), tokens[-1]
    else:
        return " ".join(tokens), ''


def resolve_ctype(declaration):
    """
    Returns the kernel language type name of the parameter ``declaration``
    with address space qualifiers, attributes, pointers, array sizes
    and vector width (e.g. ``float4`` -> ``float``) removed.
    """
    ctype, _name = _split_declaration(declaration)
    return _VECTOR_WIDTH_RE.sub('', ctype)


def parse_parameter(declaration):
    """
    Creates an :py:class:`ArgumentDescriptor` from a single parameter declaration.
    """
    direction = IN if _CONST_RE.search(declaration) is not None else INOUT
    is_vector = '*' in declaration or _ARRAY_RE.search(declaration) is not None
    shape = VECTOR if is_vector else SCALAR
    _ctype, name = _split_declaration(declaration)
    return ArgumentDescriptor(name, direction, shape, resolve_ctype(declaration))


def parse_parameters(signature):
    """
    Returns a tuple of :py:class:`ArgumentDescriptor` objects
    for the parameter list ``signature``.
    """
    return tuple(parse_parameter(declaration) for declaration in split_parameters(signature))


def unresolved_types(parameters):
    """
    Returns the list of unique element types of ``parameters``
    which are not canonical element types, in the order of appearance.
    """
    result = []
    for param in parameters:
        if not param.resolved and param.element_type not in result:
            result.append(param.element_type)
    return result


def apply_type_overrides(parameters, types, aliases=None):
    """
    Replaces the element types ``aliases`` of ``parameters``
    by the corresponding canonical element types from ``types``.
    If ``aliases`` is ``None``, the unresolved types of ``parameters`` are used.
    Returns a new tuple of descriptors.
    """
    types = list(types)
    aliases = unresolved_types(parameters) if aliases is None else list(aliases)

    if len(types) != len(aliases):
        raise InvalidAliasCount(types, aliases)

    types = [dtypes.normalize_element_type(element_type) for element_type in types]
    mapping = dict(zip(aliases, types))

    return tuple(
        param.with_element_type(mapping.get(param.element_type, param.element_type))
        for param in parameters)
