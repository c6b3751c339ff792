"""
Kernel objects: OpenCL kernels callable with ``numpy`` arrays,
with a calling convention modeled after CUDA kernel objects.
"""

import copy
import os.path
import tempfile
import warnings
from logging import info

from clkernel import dtypes
from clkernel.devices import DeviceParameters
from clkernel.errors import (
    KernelNotFoundInBuild, WrongArgumentCount, InvalidThreadBlockSize, InvalidDeviceIndex,
    NoDeviceSelected, UnresolvedArgumentType, ComplexInputCopyWarning)
from clkernel.geometry import DispatchGeometry
from clkernel.helpers import product, wrap_in_list, render_template
from clkernel.signature import (
    extract_interface, parse_parameters, apply_type_overrides, unresolved_types)


DEFAULT_COMPILER_OPTIONS = ('-cl-mad-enable', '-cl-fp32-correctly-rounded-divide-sqrt')

_CHANGEABLE_FIELDS = (
    'thread_block_size', 'grid_size', 'global_size', 'global_offset',
    'device', 'macros', 'includes', 'compiler_options')


def _write_temp_source(src):
    fd, path = tempfile.mkstemp(suffix='.cl')
    with os.fdopen(fd, 'w') as f:
        f.write(src)
    return path


def load_source(source, render_kwds=None):
    """
    Returns a tuple ``(source_file, src, includes)`` for ``source``,
    which is either a path to an existing file or the source code itself.
    Inline and rendered sources are written to a temporary ``.cl`` file.
    ``includes`` contains the directory of the original file (if there is one).
    """
    if os.path.isfile(source):
        source_file = os.path.abspath(source)
        with open(source_file) as f:
            src = f.read()
        includes = [os.path.dirname(source_file)]
    else:
        source_file = None
        src = source
        includes = []

    if render_kwds is not None:
        src = render_template(src, **render_kwds)
        source_file = None

    if source_file is None:
        source_file = _write_temp_source(src)

    return source_file, src, includes


def effective_read_only(parameters, args):
    """
    Returns the list of read-only flags to pass to the backend along with ``args``.
    Parameters declared as scalars are always read-only.
    """
    read_only = []
    for param, arg in zip(parameters, args):
        # Workaround for the backend passing read-only single-element data by value:
        # a read-only pointer parameter receiving such data is made read-write.
        # Only needed until the backend treats pointer parameters correctly.
        by_value_mismatch = param.is_input and param.is_vector and dtypes.is_scalar(arg)
        read_only.append((param.is_input and not by_value_mismatch) or not param.is_vector)
    return read_only


class Kernel:
    """
    An OpenCL kernel that can be called with host arrays.

    :param directory: a :py:class:`~clkernel.devices.DeviceDirectory`;
        its current device becomes the device of the kernel.
    :param source: a path to the kernel source file, or the source code itself.
    :param name: the name of the kernel function.
        If ``None``, the source must contain exactly one kernel.
    :param render_kwds: if given, the source is rendered as a ``Mako`` template
        with these keywords before anything else.
    :param backend: a :py:class:`~clkernel.backend.Backend` object;
        if ``None``, the backend of ``directory`` is used.

    The kernel is built on the first call, and rebuilt on subsequent calls
    if the device or the compiler options (:py:attr:`macros`, :py:attr:`includes`,
    :py:attr:`compiler_options`) have changed since the last build.

    Example: for the source ::

        kernel void addToVector(global float * pi, float c, int vecLen)
        {
            int idx = get_global_id(0);
            if (idx < vecLen) pi[idx] += c;
        }

    the kernel can be used as ::

        kern = Kernel(directory, 'simpleEx.cl')
        kern.global_size = len(x)
        pi, c, vecLen = kern(x, 2, len(x))

    .. py:attribute:: source_file

        Path to the source file being compiled.
        Inline and rendered sources are written to temporary ``.cl`` files,
        which are not deleted, since every rebuild reads the source from this file.

    .. py:attribute:: geometry

        :py:class:`~clkernel.geometry.DispatchGeometry` object used for calls.
    """

    def __init__(self, directory, source, name=None, render_kwds=None, backend=None):
        source_file, src, includes = load_source(source, render_kwds=render_kwds)

        self._interface = extract_interface(src, name=name)
        self._parameters = None

        self._directory = directory
        self._backend = backend
        self.source_file = source_file

        self.geometry = DispatchGeometry()
        self._device = directory.current
        self.macros = []
        self.includes = includes
        self.compiler_options = DEFAULT_COMPILER_OPTIONS

        self._built_device_index = None
        self._built_options = None

    @property
    def name(self):
        return self._interface.name

    @property
    def signature(self):
        """
        The parameter list of the kernel, as written in the source.
        """
        return self._interface.signature

    @property
    def declaration(self):
        return "kernel void " + self.name + "(" + " ".join(self.signature.split()) + ")"

    @property
    def parameters(self):
        """
        A tuple of :py:class:`~clkernel.signature.ArgumentDescriptor` objects.
        """
        if self._parameters is None:
            self._parameters = parse_parameters(self.signature)
        return self._parameters

    @property
    def argument_types(self):
        """
        A list of strings ``'<direction> <element type> <shape>'`` for each parameter.
        """
        return [str(param) for param in self.parameters]

    @property
    def num_inputs(self):
        return len(self.parameters)

    @property
    def max_outputs(self):
        return len([param for param in self.parameters if not param.is_input])

    def define_types(self, types, aliases=None):
        """
        Sets the element types of parameters whose types could not be recognized
        (e.g. ``typedef``-s or macros).
        Each element type name in ``aliases`` is replaced by the corresponding element of ``types``.
        If ``aliases`` is ``None``, all the unrecognized types in the order of their appearance
        in the signature are used.
        """
        self._parameters = apply_type_overrides(self.parameters, types, aliases=aliases)

    @property
    def backend(self):
        return self._directory.backend if self._backend is None else self._backend

    @property
    def device(self):
        return self._device

    @device.setter
    def device(self, device):
        if device is None or isinstance(device, DeviceParameters):
            self._device = device
        else:
            devices = self._directory.devices
            if not 0 <= device < len(devices):
                raise InvalidDeviceIndex(device, len(devices))
            self._device = devices[device]

    @property
    def max_threads_per_block(self):
        return None if self._device is None else self._device.max_work_group_size

    @property
    def thread_block_size(self):
        return self.geometry.thread_block_size

    @thread_block_size.setter
    def thread_block_size(self, value):
        self.geometry.thread_block_size = value

    @property
    def grid_size(self):
        return self.geometry.grid_size

    @grid_size.setter
    def grid_size(self, value):
        self.geometry.grid_size = value

    @property
    def global_size(self):
        return self.geometry.global_size

    @global_size.setter
    def global_size(self, value):
        self.geometry.global_size = value

    @property
    def global_offset(self):
        return self.geometry.global_offset

    @global_offset.setter
    def global_offset(self, value):
        self.geometry.global_offset = value

    @property
    def macros(self):
        """
        List of macro definitions, passed to the compiler with ``-D``.
        """
        return self._macros

    @macros.setter
    def macros(self, value):
        self._macros = wrap_in_list(value)

    @property
    def includes(self):
        """
        List of include directories, passed to the compiler with ``-I``.
        """
        return self._includes

    @includes.setter
    def includes(self, value):
        self._includes = wrap_in_list(value)

    @property
    def compiler_options(self):
        """
        List of additional compiler options.
        """
        return self._compiler_options

    @compiler_options.setter
    def compiler_options(self, value):
        self._compiler_options = wrap_in_list(value)

    @property
    def option_string(self):
        """
        The compiler option string built from
        :py:attr:`includes`, :py:attr:`macros` and :py:attr:`compiler_options`.
        """
        return " ".join(
            ["-I" + include for include in self._includes]
            + ["-D" + macro for macro in self._macros]
            + self._compiler_options)

    @property
    def built(self):
        """
        ``True`` if the kernel was built for the current device and compiler options.
        """
        return (
            self._device is not None
            and self._device.index == self._built_device_index
            and self.option_string == self._built_options)

    def build(self, options=None):
        """
        Compiles the kernel for the current device.
        ``options`` (a string or a list of strings) are appended to :py:attr:`option_string`
        for this build only; they are not taken into account by :py:attr:`built`.
        Returns ``self``.
        """
        if self._device is None:
            raise NoDeviceSelected(
                "Cannot build kernel '" + self.name + "': no device selected.")

        device = self._device
        option_string = self.option_string
        full_options = " ".join([option_string] + wrap_in_list(options)).strip()

        names = self.backend.compile(device, self.source_file, full_options)
        if self.name not in names:
            raise KernelNotFoundInBuild(self.name, names)

        info(
            "Built kernel " + self.name + " for " + repr(device)
            + " with options '" + full_options + "'")
        self._built_device_index = device.index
        self._built_options = option_string
        return self

    def _check_thread_block_size(self):
        thread_block_size = self.geometry.thread_block_size
        limits = self._device.max_work_item_sizes
        if any(size > limit for size, limit in zip(thread_block_size, limits)):
            raise InvalidThreadBlockSize(
                "The work group size of [" + ",".join(str(l) for l in thread_block_size)
                + "] cannot exceed the device limit of ["
                + ",".join(str(l) for l in limits) + "].")

        num_threads = product(thread_block_size)
        if num_threads > self._device.max_work_group_size:
            raise InvalidThreadBlockSize(
                "The number of work items (" + str(num_threads) + ") cannot exceed "
                + str(self._device.max_work_group_size) + ".")

    def __call__(self, *args, inplace=False):
        """
        Executes the kernel with ``args``, one per kernel parameter.
        Returns the list of values of the parameters not declared ``const``
        after the kernel has finished, in the order of declaration.

        Complex arrays are passed to the kernel as real arrays
        with an additional leading dimension of size 2 (real and imaginary parts),
        and converted back on return.
        Unless ``inplace`` is ``True``, all arguments are copied
        and cast to the element types of the corresponding parameters.
        With ``inplace``, only the arguments of scalar parameters are cast;
        arrays are passed as they are.
        """
        parameters = self.parameters
        if len(args) != len(parameters):
            raise WrongArgumentCount(len(parameters), self.declaration)

        if not self.built:
            info("Kernel " + self.name + " is not built for the current settings, building")
            self.build()

        self._check_thread_block_size()

        encoded = [dtypes.is_complex(arg) for arg in args]
        if inplace and any(encoded):
            warnings.warn(
                "Complex inputs will be copied to convert them to real data.",
                ComplexInputCopyWarning)
        args = [
            dtypes.complex_to_real(arg) if is_complex else arg
            for arg, is_complex in zip(args, encoded)]

        if not inplace:
            unresolved = unresolved_types(parameters)
            if len(unresolved) > 0:
                raise UnresolvedArgumentType(self.name, unresolved)
            args = [dtypes.cast(arg, param.element_type) for arg, param in zip(args, parameters)]
        else:
            # scalar parameters are passed by value and must have the exact size
            args = [
                dtypes.cast(arg, param.element_type)
                if not param.is_vector and param.resolved else arg
                for arg, param in zip(args, parameters)]

        read_only = effective_read_only(parameters, args)
        geometry, local_size = self.geometry.launch_vectors()

        results = self.backend.run(
            self._device, self.name, geometry, local_size, args, read_only)

        outputs = []
        for param, is_complex, result in zip(parameters, encoded, results):
            if param.is_input:
                continue
            outputs.append(dtypes.real_to_complex(result) if is_complex else result)
        return outputs

    def with_changes(self, **fields):
        """
        Returns a copy of this kernel with some of the settable attributes
        (geometry, device, macros, includes, compiler options) replaced.
        The copy shares the source and the signature, but not the mutable settings.
        Fields are applied in the order they are given.
        """
        new = copy.copy(self)
        new.geometry = self.geometry.copy()
        new._macros = list(self._macros)
        new._includes = list(self._includes)
        new._compiler_options = list(self._compiler_options)

        for field, value in fields.items():
            if field not in _CHANGEABLE_FIELDS:
                raise TypeError("Cannot change the field " + repr(field))
            setattr(new, field, value)

        return new

    def __repr__(self):
        return "Kernel({name}, {source_file})".format(
            name=repr(self.name), source_file=repr(self.source_file))
