import numpy

from clkernel.backend import Backend
from clkernel.devices import DEVICE_TYPES
from clkernel.errors import BuildError
from clkernel.helpers import wrap_in_tuple
from clkernel.signature import find_kernels, strip_comments


# Default tolerances for numpy.allclose().
SINGLE_RTOL = 1e-5
SINGLE_ATOL = 1e-8

DOUBLE_RTOL = 1e-11
DOUBLE_ATOL = 1e-11


def get_test_array(shape, dtype, no_zeros=False, high=None):
    shape = wrap_in_tuple(shape)
    dtype = numpy.dtype(dtype)

    if dtype.kind in 'iu':
        low = 1 if no_zeros else 0
        if high is None:
            high = 100 # will work even with signed chars
        get_arr = lambda: numpy.random.randint(low, high, shape).astype(dtype)
    else:
        low = 0.01 if no_zeros else 0
        if high is None:
            high = 1.0
        get_arr = lambda: numpy.random.uniform(low, high, shape).astype(dtype)

    if dtype.kind == "c":
        return get_arr() + 1j * get_arr()
    else:
        return get_arr()


def diff_is_negligible(m, m_ref, atol=None, rtol=None, verbose=True):

    assert m.dtype == m_ref.dtype

    if m.dtype.kind in 'iu':
        close = (m == m_ref)
    else:
        is_double = m.dtype in (numpy.float64, numpy.complex128)
        if atol is None:
            atol = DOUBLE_ATOL if is_double else SINGLE_ATOL
        if rtol is None:
            rtol = DOUBLE_RTOL if is_double else SINGLE_RTOL

        close = numpy.isclose(m, m_ref, atol=atol, rtol=rtol)

    if close.all():
        return True

    if verbose:
        far_idxs = numpy.vstack(numpy.where(close == False)).T
        print(
            ("diff_is_negligible() with atol={atol} and rtol={rtol} " +
            "found {diffs} differences, first ones are:").format(
            atol=atol, rtol=rtol, diffs=str(far_idxs.shape[0])))
        for idx, _ in zip(far_idxs, range(10)):
            idx = tuple(idx)
            print(idx, m[idx], m_ref[idx])

    return False


class StubDevice:
    """
    Mimics the attributes of ``pyopencl.Device`` used by ``DeviceParameters``.
    """

    def __init__(
            self, name, platform, type=DEVICE_TYPES['gpu'],
            max_work_group_size=256, max_work_item_sizes=(256, 256, 64),
            extensions="cl_khr_fp64 cl_khr_global_int32_base_atomics"):
        self.name = name
        self.vendor = "Stub Vendor"
        self.platform = platform
        self.type = type
        self.max_work_group_size = max_work_group_size
        self.max_work_item_sizes = list(max_work_item_sizes)
        self.local_mem_size = 32768
        self.global_mem_size = 2 ** 30
        self.max_compute_units = 8
        self.max_clock_frequency = 1000
        self.available = 1
        self.version = "OpenCL 1.2 Stub"
        self.driver_version = "1.0"
        self.opencl_c_version = "OpenCL C 1.2"
        self.extensions = extensions


class StubPlatform:
    """
    Mimics ``pyopencl.Platform``; ``devices`` is a list of keyword dictionaries
    for :py:class:`StubDevice`.
    """

    def __init__(self, name, devices):
        self.name = name
        self._devices = [StubDevice(platform=self, **kwds) for kwds in devices]

    def get_devices(self):
        return self._devices


def stub_platforms():
    return [
        StubPlatform("Stub OpenCL", [
            dict(name="Stub GPU"),
            dict(
                name="Stub CPU", type=DEVICE_TYPES['cpu'],
                max_work_group_size=1024, max_work_item_sizes=(1024, 1, 1), extensions="")]),
        ]


class StubBackend(Backend):
    """
    Records compile and run requests.
    ``emulators`` maps kernel names to functions ``(geometry, local_size, args) -> results``
    which imitate the kernels with ``numpy``;
    kernels without an emulator return their arguments unchanged.
    """

    def __init__(self, emulators=None):
        self.emulators = {} if emulators is None else dict(emulators)
        self.compiled = []
        self.runs = []
        self.build_error = None
        self.kernel_names = None

    def compile(self, device, source_file, options):
        self.compiled.append((device.index, source_file, options))
        if self.build_error is not None:
            raise BuildError(self.build_error)

        if self.kernel_names is not None:
            return list(self.kernel_names)

        with open(source_file) as f:
            src = f.read()
        return [kernel.name for kernel in find_kernels(strip_comments(src))]

    def run(self, device, name, geometry, local_size, args, read_only):
        self.runs.append((device.index, name, geometry, local_size, list(args), list(read_only)))
        if name not in self.emulators:
            return list(args)
        return self.emulators[name](geometry, local_size, [numpy.array(arg) for arg in args])


def work_item_ids(geometry):
    """
    Returns the global ids of the work items in the first dimension.
    """
    return numpy.arange(geometry[0], geometry[0] + geometry[3])


ADD_TO_VECTOR_SRC = """
kernel void addToVector(global float * pi, float c, int vecLen)
{
    int idx = get_global_id(0);
    if (idx < vecLen)
        pi[idx] += c;
}
"""


def emulate_add_to_vector(geometry, local_size, args):
    pi, c, vec_len = args
    idxs = work_item_ids(geometry)
    idxs = idxs[idxs < vec_len]
    pi[idxs] += c
    return [pi, c, vec_len]


SCALE_SRC = """
// multiplies complex numbers, stored as (real parts, imaginary parts), by a real number
kernel void scale(global float * z, const float k, const int size)
{
    int idx = get_global_id(0);
    if (idx < size)
    {
        z[idx] *= k;
        z[idx + size] *= k;
    }
}
"""


def emulate_scale(geometry, local_size, args):
    z, k, size = args
    z *= k
    return [z, k, size]
