import pytest

from clkernel.errors import AmbiguousKernel, KernelNotFound, InvalidAliasCount
from clkernel.signature import (
    IN, INOUT, SCALAR, VECTOR, ArgumentDescriptor,
    strip_comments, strip_preprocessor, find_kernels, extract_interface,
    split_parameters, resolve_ctype, parse_parameter, parse_parameters,
    unresolved_types, apply_type_overrides)

from helpers import *


TWO_KERNELS_SRC = """
kernel void first(global float *a)
{
    a[get_global_id(0)] = 0;
}

__kernel void second(const __global int *b, int n)
{
}
"""


def test_strip_comments():
    src = "int a; // kernel void fake(int x)\n/* multi\nline */ int b;"
    assert strip_comments(src) == "int a; \n \n int b;"


def test_strip_comments_keeps_literals():
    src = 'printf("/* not a comment */"); // comment'
    assert strip_comments(src) == 'printf("/* not a comment */"); '


def test_strip_preprocessor():
    src = "#define DECL \\\n    kernel void fake(int x)\nint a;\n  #include <b.h>\nint c;"
    assert strip_preprocessor(src) == "int a;\nint c;"


def test_single_kernel():
    interface = extract_interface(ADD_TO_VECTOR_SRC)
    assert interface.name == 'addToVector'
    assert interface.signature == 'global float * pi, float c, int vecLen'


def test_commented_out_kernels_are_ignored():
    src = """
    // kernel void old(int x) {}
    /*
    kernel void older(int y) {}
    */
    """ + ADD_TO_VECTOR_SRC
    assert extract_interface(src).name == 'addToVector'


def test_ambiguous_kernel():
    with pytest.raises(AmbiguousKernel) as e:
        extract_interface(TWO_KERNELS_SRC)
    assert e.value.candidates == ['first', 'second']
    assert "{first, second}" in str(e.value)


def test_kernel_by_name():
    interface = extract_interface(TWO_KERNELS_SRC, name='second')
    assert interface.name == 'second'
    assert " ".join(interface.signature.split()) == 'const __global int *b, int n'


def test_kernel_not_found():
    with pytest.raises(KernelNotFound) as e:
        extract_interface(TWO_KERNELS_SRC, name='third')
    assert e.value.candidates == ['first', 'second']


def test_no_kernels():
    with pytest.raises(KernelNotFound):
        extract_interface("float helper(float x) { return x; }")


def test_prototype_and_definition():
    src = "kernel void k(global float *x);\n" + "kernel void k(global float *x) { x[0] = 1; }"
    kernels = find_kernels(src)
    assert len(kernels) == 1
    assert extract_interface(src).name == 'k'


def test_multiline_signature():
    src = """
    kernel void
    multi(
        global float *a,   // first
        int n              /* second */
        )
    {
    }
    """
    interface = extract_interface(src)
    assert split_parameters(interface.signature) == ['global float *a', 'int n']


def test_split_parameters():
    assert split_parameters("") == []
    assert split_parameters(" void ") == []
    assert split_parameters("float a[2*(3+1)], int b") == ['float a[2*(3+1)]', 'int b']


@pytest.mark.parametrize(('declaration', 'ctype'), [
    ('global float *x', 'float'),
    ('const __global float4 * restrict x', 'float'),
    ('unsigned int n', 'unsigned int'),
    ('global uchar16 *img', 'uchar'),
    ('real_t *x', 'real_t'),
    ('float a[16]', 'float'),
    ])
def test_resolve_ctype(declaration, ctype):
    assert resolve_ctype(declaration) == ctype


@pytest.mark.parametrize(('declaration', 'expected'), [
    ('global float * pi', ArgumentDescriptor('pi', INOUT, VECTOR, 'float')),
    ('float c', ArgumentDescriptor('c', INOUT, SCALAR, 'float')),
    ('const int vecLen', ArgumentDescriptor('vecLen', IN, SCALAR, 'int')),
    ('__constant double *coeffs', ArgumentDescriptor('coeffs', IN, VECTOR, 'double')),
    ('const __global float4 *restrict v', ArgumentDescriptor('v', IN, VECTOR, 'float')),
    ('global float *constants', ArgumentDescriptor('constants', INOUT, VECTOR, 'float')),
    ('unsigned int n', ArgumentDescriptor('n', INOUT, SCALAR, 'unsigned int')),
    ('float a[16]', ArgumentDescriptor('a', INOUT, VECTOR, 'float')),
    ('global float *', ArgumentDescriptor('', INOUT, VECTOR, 'float')),
    ])
def test_parse_parameter(declaration, expected):
    assert parse_parameter(declaration) == expected


def test_element_types():
    params = parse_parameters(
        "global uchar *a, const ushort b, uint c, long d, half e, double f, my_type g")
    assert [param.element_type for param in params] == [
        'uint8', 'uint16', 'uint32', 'int64', 'half', 'double', 'my_type']
    assert [param.resolved for param in params] == [True] * 6 + [False]


def test_descriptor_str():
    param = parse_parameter('global float *x')
    assert str(param) == 'inout float vector'


def test_unresolved_types():
    params = parse_parameters("global real_t *x, real_t y, int n, global cplx_t *z")
    assert unresolved_types(params) == ['real_t', 'cplx_t']


def test_overrides_default_aliases():
    params = parse_parameters("global real_t *x, real_t y, int n")
    params = apply_type_overrides(params, ['float'])
    assert [param.element_type for param in params] == ['float', 'float', 'int32']
    assert [param.ctype for param in params] == ['real_t', 'real_t', 'int']


def test_overrides_are_simultaneous():
    params = parse_parameters("global float *x, global double *y")
    params = apply_type_overrides(params, ['double', 'float'], aliases=['float', 'double'])
    assert [param.element_type for param in params] == ['double', 'float']


def test_overrides_numpy_names():
    params = parse_parameters("global real_t *x")
    params = apply_type_overrides(params, ['float64'])
    assert params[0].element_type == 'double'


def test_overrides_unknown_type():
    params = parse_parameters("global real_t *x")
    with pytest.raises(ValueError):
        apply_type_overrides(params, ['complex64'])


def test_overrides_wrong_count():
    params = parse_parameters("global real_t *x, cplx_t y")
    with pytest.raises(InvalidAliasCount) as e:
        apply_type_overrides(params, ['float'])
    assert e.value.aliases == ['real_t', 'cplx_t']
