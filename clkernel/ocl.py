from logging import error

import numpy
import pyopencl as cl

from clkernel.backend import Backend
from clkernel.errors import BuildError, ExecutionError
from clkernel.helpers import numbered_listing
import clkernel.dtypes as dtypes


class OpenCLBackend(Backend):
    """
    A :py:class:`~clkernel.backend.Backend` based on ``PyOpenCL``.
    Creates one context and one queue per device, on first use.
    Every call copies its arguments to the device and the read-write ones back.
    """

    def __init__(self):
        self._queues = {}
        self._programs = {}

    def _get_queue(self, device):
        if device.index not in self._queues:
            context = cl.Context(devices=[device.device])
            self._queues[device.index] = context, cl.CommandQueue(context)
        return self._queues[device.index]

    def compile(self, device, source_file, options):
        with open(source_file) as f:
            src = f.read()

        context, _queue = self._get_queue(device)
        try:
            program = cl.Program(context, src).build(options=options)
        except cl.Error as exc:
            error(
                "Failed to compile:\n" + numbered_listing(src)
                + "\nwith options: " + options)
            raise BuildError(str(exc)) from exc

        names = [kernel.function_name for kernel in program.all_kernels()]
        for name in names:
            self._programs[(device.index, name)] = program
        return names

    def _to_kernel_arg(self, context, arg, read_only):
        if read_only and dtypes.is_scalar(arg):
            # passed by value
            return numpy.asarray(arg).reshape(-1)[0], None

        host = numpy.ascontiguousarray(arg)
        if not read_only and not host.flags.writeable:
            host = host.copy()

        mf = cl.mem_flags
        flags = (mf.READ_ONLY if read_only else mf.READ_WRITE) | mf.COPY_HOST_PTR
        return cl.Buffer(context, flags, hostbuf=host), host

    def run(self, device, name, geometry, local_size, args, read_only):
        if (device.index, name) not in self._programs:
            raise ExecutionError(
                "Kernel " + name + " has not been compiled for device " + repr(device))

        program = self._programs[(device.index, name)]
        context, queue = self._get_queue(device)

        global_offset = tuple(geometry[:3])
        global_size = tuple(geometry[3:])

        try:
            kernel = getattr(program, name)
            converted = [
                self._to_kernel_arg(context, arg, ro) for arg, ro in zip(args, read_only)]
            kernel(
                queue, global_size, tuple(local_size),
                *[kernel_arg for kernel_arg, _host in converted],
                global_offset=global_offset)

            results = []
            for arg, ro, (kernel_arg, host) in zip(args, read_only, converted):
                if ro:
                    results.append(arg)
                else:
                    cl.enqueue_copy(queue, host, kernel_arg)
                    results.append(host)
            queue.finish()
        except cl.Error as exc:
            raise ExecutionError(str(exc)) from exc

        return results
