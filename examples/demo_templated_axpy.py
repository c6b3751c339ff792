"""
An example demonstrating a kernel with a templated element type.
The source uses the type ``real_t``, defined by a macro passed to the compiler,
so the element type of the parameters cannot be inferred from the declaration
and has to be provided with ``define_types()``.
The loop unrolling factor is a template parameter, rendered with ``Mako`` before compilation.
"""

import numpy

from clkernel import DeviceDirectory


src = """
kernel void axpy(global real_t *y, const global real_t *x, const real_t a, const int size)
{
    int idx = get_global_id(0) * ${unroll};
    %for i in range(unroll):
    if (idx + ${i} < size)
        y[idx + ${i}] += a * x[idx + ${i}];
    %endfor
}
"""

unroll = 4
size = 1000

directory = DeviceDirectory()
print("Using", directory.current.name, "on", directory.current.platform_name)

kern = directory.kernel(src, render_kwds=dict(unroll=unroll))
kern.macros = ['real_t=double' if directory.current.supports_double else 'real_t=float']
kern.define_types(['double' if directory.current.supports_double else 'float'])
print(kern.declaration)
print(kern.argument_types)

kern.thread_block_size = 64
kern.global_size = (size + unroll - 1) // unroll

x = numpy.random.rand(size)
y = numpy.random.rand(size)
y_new, = kern(y, x, 2, size)

assert numpy.allclose(y_new, y + 2 * x, rtol=1e-5)
